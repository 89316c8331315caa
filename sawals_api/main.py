import logging
import time

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sawals_api.core.config import Settings
from sawals_api.core.db import Base, build_engine, build_session_factory
from sawals_api.core.deps import client_ip
from sawals_api.core.errors import AppError, RateLimited, app_error_handler, error_response
from sawals_api.core.log import configure_logging
from sawals_api.core.rate_limit import GENERAL_RULE, build_rate_limiter
from sawals_api.core.tokens import TokenService
from sawals_api.domains.analytics.router import router as analytics_router
from sawals_api.domains.catalog.router import router as catalog_router
from sawals_api.domains.identity.google import GoogleOAuthClient
from sawals_api.domains.identity.router import router as identity_router
from sawals_api.domains.monitoring.router import router as monitoring_router
from sawals_api.utils.captcha import CaptchaVerifier
from sawals_api.utils.sms import Fast2SmsSender

logger = logging.getLogger(__name__)

RATE_LIMIT_EXEMPT_PATHS = {"/health"}


def create_app(
    settings: Settings | None = None,
    *,
    sms_sender=None,
    rate_limiter=None,
    captcha: CaptchaVerifier | None = None,
    google: GoogleOAuthClient | None = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    # Fails fast on missing or malformed key material.
    token_service = TokenService.from_settings(settings)

    engine = build_engine(settings.database_url)
    # No migration tool yet: create missing tables on boot.
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = token_service
    app.state.sms_sender = sms_sender or Fast2SmsSender(settings)
    app.state.captcha = captcha or CaptchaVerifier(settings)
    app.state.google = google or GoogleOAuthClient(settings)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)
    app.state.started_at = time.monotonic()

    app.add_exception_handler(AppError, app_error_handler)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        # Body content is never logged; it can carry phone numbers and codes.
        if settings.env == "dev":
            logger.info("Validation failed path=%s errors=%s", request.url.path, exc.errors())
        return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

    @app.middleware("http")
    async def _general_rate_limit(request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)
        ip = client_ip(request)
        info = await run_in_threadpool(
            request.app.state.rate_limiter.hit,
            f"{GENERAL_RULE.name}:{ip}",
            GENERAL_RULE.limit,
            GENERAL_RULE.window_seconds,
        )
        if not info.allowed:
            logger.warning("event=rate_limited rule=%s ip=%s retry_after=%s", GENERAL_RULE.name, ip, info.retry_after)
            return error_response(RateLimited(GENERAL_RULE.message, retry_after=info.retry_after))
        return await call_next(request)

    origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins if origins else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        sender = app.state.sms_sender
        return {
            "ok": True,
            "service": settings.app_name,
            "env": settings.env,
            "sms_configured": bool(getattr(sender, "configured", False)),
            "sms_missing": sender.missing_fields() if hasattr(sender, "missing_fields") else [],
            "google_configured": settings.google_configured,
        }

    app.include_router(identity_router, tags=["identity"])
    app.include_router(catalog_router, tags=["catalog"])
    app.include_router(analytics_router, tags=["analytics"])
    app.include_router(monitoring_router, tags=["monitoring"])

    logger.info("App created env=%s rate_limit_backend=%s", settings.env, settings.rate_limit_backend)
    return app
