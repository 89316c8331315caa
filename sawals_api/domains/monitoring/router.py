from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sawals_api.core.config import Settings
from sawals_api.core.deps import get_db, get_principal, get_settings, get_sms_sender
from sawals_api.domains.monitoring.service import cleanup_otps, system_health

router = APIRouter(prefix="/monitoring", dependencies=[Depends(get_principal)])


class SystemHealthOut(BaseModel):
    database: str
    sms_service: str
    uptime_seconds: int
    timestamp: str


class CleanupOut(BaseModel):
    expired_deleted: int
    old_deleted: int
    total_deleted: int


@router.get("/health", response_model=SystemHealthOut)
def health(request: Request, db: Session = Depends(get_db), sender=Depends(get_sms_sender)) -> SystemHealthOut:
    result = system_health(
        db,
        sms_configured=bool(getattr(sender, "configured", False)),
        started_at=request.app.state.started_at,
    )
    return SystemHealthOut(**result)


@router.post("/cleanup", response_model=CleanupOut)
def cleanup(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> CleanupOut:
    return CleanupOut(**cleanup_otps(db, retention_seconds=settings.otp_retention_seconds))
