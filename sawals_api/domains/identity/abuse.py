import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sawals_api.core.log import mask_phone
from sawals_api.domains.identity.models import OtpRecord

logger = logging.getLogger(__name__)

SUSPICIOUS_WINDOW = timedelta(hours=1)
MAX_ISSUES_PER_WINDOW = 10
EXHAUSTED_ATTEMPTS = 5
MAX_EXHAUSTED_PER_WINDOW = 3


def check_suspicious_activity(db: Session, phone_number: str, *, now: datetime | None = None) -> bool:
    """
    Advisory heuristic: flags a phone number that requested more than 10 OTPs
    in the last hour, or burned through the attempt budget on more than 3
    distinct OTPs in that hour. Only logs; callers decide what to do.
    """
    since = (now or datetime.now(timezone.utc)) - SUSPICIOUS_WINDOW

    issued = db.execute(
        select(func.count(OtpRecord.otp_id)).where(
            OtpRecord.phone_number == phone_number,
            OtpRecord.created_at >= since,
        )
    ).scalar_one()
    if issued > MAX_ISSUES_PER_WINDOW:
        logger.warning(
            "event=suspicious_activity phone=%s reason=too_many_otp_requests count=%s",
            mask_phone(phone_number),
            issued,
        )
        return True

    exhausted = db.execute(
        select(func.count(OtpRecord.otp_id)).where(
            OtpRecord.phone_number == phone_number,
            OtpRecord.created_at >= since,
            OtpRecord.attempts >= EXHAUSTED_ATTEMPTS,
        )
    ).scalar_one()
    if exhausted > MAX_EXHAUSTED_PER_WINDOW:
        logger.warning(
            "event=suspicious_activity phone=%s reason=too_many_failed_attempts count=%s",
            mask_phone(phone_number),
            exhausted,
        )
        return True

    return False
