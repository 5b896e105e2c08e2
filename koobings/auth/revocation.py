"""Server-side token revocation list keyed by JWT id."""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from koobings.models.revoked_token import RevokedToken

logger = logging.getLogger(__name__)


def revoke_token(db: Session, jti: str, expires_at: datetime) -> None:
    if db.get(RevokedToken, jti) is None:
        db.add(RevokedToken(jti=jti, expires_at=expires_at))
    purge_expired(db)
    db.commit()
    logger.info("Revoked token %s until %s", jti, expires_at.isoformat())


def is_token_revoked(db: Session, jti: str | None, now: datetime | None = None) -> bool:
    if not jti:
        return False
    entry = db.get(RevokedToken, jti)
    if entry is None:
        return False
    current_time = now or datetime.utcnow()
    return entry.expires_at > current_time


def purge_expired(db: Session, now: datetime | None = None) -> int:
    current_time = now or datetime.utcnow()
    return db.query(RevokedToken).filter(RevokedToken.expires_at <= current_time).delete(
        synchronize_session=False
    )
