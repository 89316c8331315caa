import logging
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sawals_api.domains.identity.service import cleanup_expired_otps, cleanup_old_otps

logger = logging.getLogger(__name__)


def database_status(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        db.rollback()
        return "unhealthy"
    return "healthy"


def system_health(db: Session, *, sms_configured: bool, started_at: float) -> dict:
    return {
        "database": database_status(db),
        "sms_service": "healthy" if sms_configured else "not_configured",
        "uptime_seconds": int(time.monotonic() - started_at),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def cleanup_otps(db: Session, *, retention_seconds: int, now: datetime | None = None) -> dict:
    """Delete expired OTP records, then anything older than the retention window."""
    now = now or datetime.now(timezone.utc)
    expired = cleanup_expired_otps(db, now=now)
    old = cleanup_old_otps(db, older_than=timedelta(seconds=retention_seconds), now=now)
    logger.info("event=otp_cleanup expired_deleted=%s old_deleted=%s", expired, old)
    return {"expired_deleted": expired, "old_deleted": old, "total_deleted": expired + old}
