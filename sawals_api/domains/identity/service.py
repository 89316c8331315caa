import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sawals_api.core.config import Settings
from sawals_api.core.errors import (
    AttemptsExceeded,
    Conflict,
    DispatchFailed,
    InvalidOrExpiredOtp,
    InvalidOtp,
    InvalidOtpFormat,
    InvalidPhoneFormat,
    NotFound,
)
from sawals_api.core.log import mask_phone
from sawals_api.core.security import generate_otp, generate_salt, hash_otp, verify_otp_hash
from sawals_api.domains.identity.abuse import check_suspicious_activity
from sawals_api.domains.identity.models import OtpRecord, User
from sawals_api.utils.phone import is_valid_otp, is_valid_phone_number, normalize_phone_number
from sawals_api.utils.sms import SmsSender, otp_message

logger = logging.getLogger(__name__)


@dataclass
class VerifiedIdentity:
    user: User
    is_new_user: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canonical_phone(phone_number: str) -> str:
    if not is_valid_phone_number(phone_number):
        raise InvalidPhoneFormat()
    return normalize_phone_number(phone_number)


def issue_otp(
    db: Session,
    phone_number: str,
    *,
    sender: SmsSender,
    settings: Settings,
    now: datetime | None = None,
) -> OtpRecord:
    phone = canonical_phone(phone_number)
    now = now or _utcnow()

    otp = generate_otp(settings.otp_len)
    salt = generate_salt(settings.otp_salt_length)
    record = OtpRecord(
        phone_number=phone,
        otp_hash=hash_otp(otp, salt, iterations=settings.otp_hash_iterations, dklen=settings.otp_hash_length),
        salt=salt,
        attempts=0,
        max_attempts=settings.otp_max_attempts,
        created_at=now,
        expires_at=now + timedelta(seconds=settings.otp_ttl_seconds),
        updated_at=now,
    )
    db.add(record)
    db.commit()
    logger.info("event=otp_generated phone=%s otp_id=%s", mask_phone(phone), record.otp_id)

    message = otp_message(otp, settings.sms_app_name, settings.otp_ttl_seconds // 60)
    try:
        sent = sender.send(phone, message)
    except Exception:
        logger.exception("event=sms_error phone=%s otp_id=%s", mask_phone(phone), record.otp_id)
        sent = False

    if not sent:
        # A code nobody received must not stay verifiable.
        db.delete(record)
        db.commit()
        raise DispatchFailed()

    return record


def verify_otp(
    db: Session,
    phone_number: str,
    otp: str,
    user_name: str | None = None,
    *,
    settings: Settings,
    now: datetime | None = None,
) -> VerifiedIdentity:
    if not is_valid_otp(otp, settings.otp_len):
        logger.info("event=otp_failed phone=%s reason=invalid_format", mask_phone(phone_number))
        raise InvalidOtpFormat()
    phone = canonical_phone(phone_number)
    now = now or _utcnow()

    check_suspicious_activity(db, phone, now=now)

    record = db.execute(
        select(OtpRecord)
        .where(
            OtpRecord.phone_number == phone,
            OtpRecord.expires_at > now,
            OtpRecord.consumed_at.is_(None),
        )
        .order_by(OtpRecord.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if record is None:
        logger.info("event=otp_failed phone=%s reason=not_found_or_expired", mask_phone(phone))
        raise InvalidOrExpiredOtp()

    if record.attempts >= record.max_attempts:
        logger.info("event=otp_failed phone=%s otp_id=%s reason=attempts_exceeded", mask_phone(phone), record.otp_id)
        raise AttemptsExceeded()

    matches = verify_otp_hash(
        otp,
        record.salt,
        record.otp_hash,
        iterations=settings.otp_hash_iterations,
        dklen=settings.otp_hash_length,
    )
    if not matches:
        # Conditional increment: concurrent failures cannot push attempts past the budget.
        db.execute(
            update(OtpRecord)
            .where(OtpRecord.otp_id == record.otp_id, OtpRecord.attempts < OtpRecord.max_attempts)
            .values(attempts=OtpRecord.attempts + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        logger.info("event=otp_failed phone=%s otp_id=%s reason=mismatch", mask_phone(phone), record.otp_id)
        raise InvalidOtp()

    # Compare-and-swap on consumed_at: of two racing requests only one gets the row.
    consumed = db.execute(
        update(OtpRecord)
        .where(
            OtpRecord.otp_id == record.otp_id,
            OtpRecord.consumed_at.is_(None),
            OtpRecord.expires_at > now,
        )
        .values(consumed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if consumed.rowcount != 1:
        db.rollback()
        logger.info("event=otp_failed phone=%s otp_id=%s reason=already_consumed", mask_phone(phone), record.otp_id)
        raise InvalidOrExpiredOtp()

    # Consumption and the identity upsert commit together.
    try:
        identity = _upsert_phone_user(db, phone, user_name, now)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("User already exists") from e

    logger.info(
        "event=otp_verified phone=%s user_id=%s new=%s",
        mask_phone(phone),
        identity.user.user_id,
        identity.is_new_user,
    )
    return identity


def _upsert_phone_user(db: Session, phone: str, user_name: str | None, now: datetime) -> VerifiedIdentity:
    user = db.execute(select(User).where(User.phone_number == phone)).scalar_one_or_none()
    if user is None:
        user = User(
            phone_number=phone,
            user_name=(user_name or "").strip() or f"User_{phone}",
            auth_provider="phone",
            is_phone_verified=True,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        logger.info("event=user_created user_id=%s phone=%s", user.user_id, mask_phone(phone))
        return VerifiedIdentity(user=user, is_new_user=True)

    user.is_phone_verified = True
    user.last_login_at = now
    user.updated_at = now
    db.flush()
    logger.info("event=user_login user_id=%s phone=%s", user.user_id, mask_phone(phone))
    return VerifiedIdentity(user=user, is_new_user=False)


def upsert_google_user(db: Session, *, email: str, name: str | None, now: datetime | None = None) -> User:
    now = now or _utcnow()
    email = email.strip().lower()
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(
            email=email,
            user_name=name or email,
            auth_provider="google",
            created_at=now,
            updated_at=now,
        )
        db.add(user)
    else:
        user.user_name = name or user.user_name or email
        user.last_login_at = now
        user.updated_at = now
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("User already exists") from e
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def is_username_available(db: Session, user_name: str) -> bool:
    taken = db.execute(
        select(func.count(User.user_id)).where(func.lower(User.user_name) == user_name.strip().lower())
    ).scalar_one()
    return taken == 0


def cleanup_expired_otps(db: Session, *, now: datetime | None = None) -> int:
    now = now or _utcnow()
    result = db.execute(
        delete(OtpRecord).where(OtpRecord.expires_at < now).execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def cleanup_old_otps(db: Session, *, older_than: timedelta, now: datetime | None = None) -> int:
    cutoff = (now or _utcnow()) - older_than
    result = db.execute(
        delete(OtpRecord).where(OtpRecord.created_at < cutoff).execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0
