from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from sawals_api.domains.identity.models import OtpRecord
from sawals_api.domains.monitoring.service import cleanup_otps


def _record(created, ttl=timedelta(minutes=10)):
    return OtpRecord(
        phone_number="9876543210",
        otp_hash=b"h" * 64,
        salt=b"s" * 16,
        created_at=created,
        expires_at=created + ttl,
        updated_at=created,
    )


def test_cleanup_removes_expired_and_old_records(db):
    now = datetime.now(timezone.utc)
    db.add_all(
        [
            _record(now - timedelta(minutes=20)),
            _record(now - timedelta(hours=30), ttl=timedelta(days=7)),
            _record(now - timedelta(minutes=1)),
        ]
    )
    db.commit()

    result = cleanup_otps(db, retention_seconds=24 * 60 * 60, now=now)

    assert result == {"expired_deleted": 1, "old_deleted": 1, "total_deleted": 2}
    assert db.execute(select(func.count(OtpRecord.otp_id))).scalar_one() == 1


def test_monitoring_requires_auth(client):
    assert client.get("/monitoring/health").status_code == 401
    assert client.post("/monitoring/cleanup").status_code == 401


def test_monitoring_health(client, auth_headers):
    resp = client.get("/monitoring/health", headers=auth_headers())

    assert resp.status_code == 200
    body = resp.json()
    assert body["database"] == "healthy"
    assert body["sms_service"] == "healthy"
    assert body["uptime_seconds"] >= 0


def test_monitoring_cleanup_endpoint(client, auth_headers):
    resp = client.post("/monitoring/cleanup", headers=auth_headers())

    assert resp.status_code == 200
    assert resp.json()["total_deleted"] == 0
