import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from sawals_api.core.config import Settings
from sawals_api.core.deps import (
    client_ip,
    get_captcha,
    get_current_user_id,
    get_db,
    get_google_client,
    get_settings,
    get_sms_sender,
    get_token_service,
    rate_limit,
)
from sawals_api.core.errors import CaptchaFailed, ServiceUnavailable
from sawals_api.core.rate_limit import SEND_OTP_RULE, USERNAME_CHECK_RULE, VERIFY_OTP_RULE
from sawals_api.core.tokens import TokenService
from sawals_api.domains.identity.google import GoogleAuthError, GoogleOAuthClient
from sawals_api.domains.identity.schemas import (
    AuthUserOut,
    LoginOut,
    OtpSendIn,
    OtpSendOut,
    OtpVerifyIn,
    PhoneLoginIn,
    TokenOut,
    UserOut,
    UsernameCheckIn,
    UsernameCheckOut,
    VerifiedUserOut,
    VerifyOut,
)
from sawals_api.domains.identity.service import (
    get_user,
    is_username_available,
    issue_otp,
    upsert_google_user,
    verify_otp,
)
from sawals_api.utils.captcha import CaptchaVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post(
    "/phone/send-otp",
    response_model=OtpSendOut,
    dependencies=[Depends(rate_limit(SEND_OTP_RULE))],
)
def send_otp(
    payload: OtpSendIn,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sender=Depends(get_sms_sender),
    captcha: CaptchaVerifier = Depends(get_captcha),
) -> OtpSendOut:
    if settings.captcha_enforce:
        result = captcha.verify(payload.captcha_token, client_ip(request))
        if not result.success:
            raise CaptchaFailed(result.message)
    record = issue_otp(db, payload.phone_number, sender=sender, settings=settings)
    return OtpSendOut(otp_id=record.otp_id, expires_in_seconds=settings.otp_ttl_seconds)


@router.post(
    "/phone/verify-otp",
    response_model=VerifyOut,
    dependencies=[Depends(rate_limit(VERIFY_OTP_RULE))],
)
def verify(
    payload: OtpVerifyIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> VerifyOut:
    identity = verify_otp(db, payload.phone_number, payload.otp, payload.user_name, settings=settings)
    user = identity.user
    token = tokens.issue(str(user.user_id), phone_number=user.phone_number)
    return VerifyOut(
        token=token,
        user=VerifiedUserOut(
            user_id=user.user_id,
            phone_number=user.phone_number,
            user_name=user.user_name,
            is_new_user=identity.is_new_user,
        ),
    )


@router.post(
    "/phone/login",
    response_model=LoginOut,
    dependencies=[Depends(rate_limit(VERIFY_OTP_RULE))],
)
def login(
    payload: PhoneLoginIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> LoginOut:
    identity = verify_otp(db, payload.phone_number, payload.otp, settings=settings)
    user = identity.user
    token = tokens.issue(str(user.user_id), phone_number=user.phone_number)
    return LoginOut(
        token=token,
        user=AuthUserOut(user_id=user.user_id, phone_number=user.phone_number, user_name=user.user_name),
    )


@router.post(
    "/check-username",
    response_model=UsernameCheckOut,
    dependencies=[Depends(rate_limit(USERNAME_CHECK_RULE, include_phone=False))],
)
def check_username(payload: UsernameCheckIn, db: Session = Depends(get_db)) -> UsernameCheckOut:
    return UsernameCheckOut(user_name=payload.user_name, available=is_username_available(db, payload.user_name))


@router.get("/me", response_model=UserOut)
def me(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> UserOut:
    return UserOut(**get_user(db, user_id).to_public_dict())


@router.get("/google")
def google_start(google: GoogleOAuthClient = Depends(get_google_client)) -> RedirectResponse:
    if not google.configured:
        raise ServiceUnavailable("Google sign-in is not configured")
    return RedirectResponse(google.authorization_url(), status_code=307)


@router.get("/google/callback", response_model=TokenOut)
def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    google: GoogleOAuthClient = Depends(get_google_client),
    tokens: TokenService = Depends(get_token_service),
):
    if not google.configured:
        raise ServiceUnavailable("Google sign-in is not configured")
    try:
        if error:
            raise GoogleAuthError(f"provider error: {error}")
        profile = google.authenticate(code, state)
    except GoogleAuthError as e:
        logger.warning("event=google_auth_failed reason=%s", e)
        return RedirectResponse(settings.google_failure_redirect, status_code=302)

    user = upsert_google_user(db, email=profile.email, name=profile.name)
    logger.info("event=google_login user_id=%s", user.user_id)
    return TokenOut(token=tokens.issue(str(user.user_id), email=user.email))
