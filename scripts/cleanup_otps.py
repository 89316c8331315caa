#!/usr/bin/env python3
"""
Delete expired OTP records and anything past the retention window.

Meant for cron; reads the same environment as the API.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import func, select

from sawals_api.core.config import Settings
from sawals_api.core.db import build_engine, build_session_factory
from sawals_api.core.log import configure_logging
from sawals_api.domains.identity.models import OtpRecord
from sawals_api.domains.monitoring.service import cleanup_otps


def main(argv: list[str] | None = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Clean up old OTP records")
    parser.add_argument("--retention-hours", type=int, default=None, help="Override OTP retention (hours)")
    parser.add_argument("--dry-run", action="store_true", help="Only count what would be deleted")
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(settings.log_level)
    retention_seconds = (
        args.retention_hours * 3600 if args.retention_hours is not None else settings.otp_retention_seconds
    )

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)
    with session_factory() as db:
        if args.dry_run:
            now = datetime.now(timezone.utc)
            cutoff = now - timedelta(seconds=retention_seconds)
            count = db.execute(
                select(func.count(OtpRecord.otp_id)).where(
                    (OtpRecord.expires_at < now) | (OtpRecord.created_at < cutoff)
                )
            ).scalar_one()
            print(f"{count} OTP records would be deleted")
            return 0

        result = cleanup_otps(db, retention_seconds=retention_seconds)
    print(f"expired: {result['expired_deleted']} old: {result['old_deleted']} total: {result['total_deleted']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
