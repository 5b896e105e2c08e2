class MalformedScheduleInput(ValueError):
    """Raised when schedule data or slot parameters cannot produce a correct result."""
