import logging

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from sawals_api.core.config import Settings
from sawals_api.core.errors import RateLimited, Unauthorized
from sawals_api.core.log import mask_phone
from sawals_api.core.rate_limit import RateLimitRule
from sawals_api.core.security import Principal
from sawals_api.core.tokens import TokenService
from sawals_api.utils.phone import is_valid_phone_number, normalize_phone_number

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_sms_sender(request: Request):
    return request.app.state.sms_sender


def get_captcha(request: Request):
    return request.app.state.captcha


def get_google_client(request: Request):
    return request.app.state.google


def client_ip(request: Request) -> str:
    settings: Settings = request.app.state.settings
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for") or ""
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def get_principal(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Principal:
    auth = request.headers.get("authorization") or ""
    prefix = "bearer "
    if not auth.lower().startswith(prefix):
        raise Unauthorized("Missing bearer token")
    token = auth[len(prefix) :].strip()
    if not token:
        raise Unauthorized("Missing bearer token")
    claims = tokens.authenticate(token)
    return Principal.from_claims(claims)


async def _phone_from_body(request: Request) -> str:
    """Canonical phone from the JSON body, or "" when absent or invalid."""
    try:
        body = await request.json()
    except ValueError:
        # Malformed bodies are rejected by request validation right after.
        return ""
    raw = body.get("phone_number") if isinstance(body, dict) else None
    if not isinstance(raw, str):
        return ""
    return normalize_phone_number(raw) if is_valid_phone_number(raw) else ""


def rate_limit(rule: RateLimitRule, *, include_phone: bool = True):
    """Dependency enforcing `rule`, keyed by client IP and (optionally) the phone in the body."""

    async def _inner(request: Request) -> None:
        ip = client_ip(request)
        key = f"{rule.name}:{ip}"
        phone = await _phone_from_body(request) if include_phone else ""
        if phone:
            key = f"{key}-{phone}"
        limiter = request.app.state.rate_limiter
        info = await run_in_threadpool(limiter.hit, key, rule.limit, rule.window_seconds)
        if not info.allowed:
            logger.warning(
                "event=rate_limited rule=%s ip=%s phone=%s retry_after=%s",
                rule.name,
                ip,
                mask_phone(phone),
                info.retry_after,
            )
            raise RateLimited(rule.message, retry_after=info.retry_after)

    return _inner


def get_current_user_id(principal: Principal = Depends(get_principal)) -> int:
    if not principal.sub.isdigit():
        raise Unauthorized()
    return principal.user_id
