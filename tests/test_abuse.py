from datetime import datetime, timedelta, timezone

from sawals_api.domains.identity.abuse import check_suspicious_activity
from sawals_api.domains.identity.models import OtpRecord

PHONE = "9876543210"


def _add_records(db, count, *, attempts=0, age=timedelta(minutes=5), phone=PHONE):
    now = datetime.now(timezone.utc)
    for _ in range(count):
        created = now - age
        db.add(
            OtpRecord(
                phone_number=phone,
                otp_hash=b"h" * 64,
                salt=b"s" * 16,
                attempts=attempts,
                created_at=created,
                expires_at=created + timedelta(minutes=10),
                updated_at=created,
            )
        )
    db.commit()


def test_quiet_phone_is_not_flagged(db):
    _add_records(db, 3)
    assert check_suspicious_activity(db, PHONE) is False


def test_many_requests_in_an_hour_are_flagged(db):
    _add_records(db, 11)
    assert check_suspicious_activity(db, PHONE) is True


def test_ten_requests_is_still_fine(db):
    _add_records(db, 10)
    assert check_suspicious_activity(db, PHONE) is False


def test_old_requests_do_not_count(db):
    _add_records(db, 11, age=timedelta(hours=2))
    assert check_suspicious_activity(db, PHONE) is False


def test_repeated_exhausted_codes_are_flagged(db):
    _add_records(db, 4, attempts=5)
    assert check_suspicious_activity(db, PHONE) is True


def test_other_phones_are_ignored(db):
    _add_records(db, 20, phone="9123456789")
    assert check_suspicious_activity(db, PHONE) is False
