"""
Scheduling core

Pure slot computation shared by every booking path:
- Half-open interval helpers and the lunch-break splitter (intervals.py)
- Canonical staff schedule accessor (schedule.py)
- Slot generation and conflict filtering (slots.py)

Nothing in this package touches the database; callers pass in the rows.
"""

from koobings.scheduling.errors import MalformedScheduleInput

__all__ = ["MalformedScheduleInput"]
