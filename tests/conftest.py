import re

import pytest
from fastapi.testclient import TestClient
from jwcrypto import jwk

from sawals_api.core.config import Settings
from sawals_api.core.rate_limit import InMemorySlidingWindowLimiter
from sawals_api.domains.identity.models import User
from sawals_api.main import create_app

OTP_IN_MESSAGE = re.compile(r"is: (\d+)\.")


class FakeSender:
    """Captures outgoing SMS instead of calling a provider."""

    configured = True

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.messages: list[tuple[str, str]] = []

    def send(self, phone: str, message: str) -> bool:
        self.messages.append((phone, message))
        return self.ok

    def missing_fields(self) -> list[str]:
        return []

    def last_otp(self) -> str:
        return OTP_IN_MESSAGE.search(self.messages[-1][1]).group(1)


@pytest.fixture(scope="session")
def rsa_jwk_pair():
    key = jwk.JWK.generate(kty="RSA", size=2048, kid="test-key")
    return key.export_public(), key.export_private()


@pytest.fixture
def settings(rsa_jwk_pair):
    public, private = rsa_jwk_pair
    return Settings(
        _env_file=None,
        env="test",
        jwt_signing_secret="test-signing-secret",
        jwt_enc_public_jwk=public,
        jwt_enc_private_jwk=private,
        jwt_enc_key_id="test-key",
        database_url="sqlite://",
        rate_limit_backend="memory",
        fast2sms_api_key=None,
        google_client_id=None,
        google_client_secret=None,
        recaptcha_secret_key=None,
        captcha_enforce=False,
    )


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def limiter():
    return InMemorySlidingWindowLimiter()


@pytest.fixture
def app(settings, sender, limiter):
    return create_app(settings, sms_sender=sender, rate_limiter=limiter)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def token_service(app):
    return app.state.token_service


@pytest.fixture
def make_user(db):
    def _make(phone: str = "9876543210", user_name: str | None = None, **fields) -> User:
        user = User(phone_number=phone, user_name=user_name or f"User_{phone}", **fields)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(make_user, token_service):
    def _headers(user: User | None = None) -> dict:
        user = user or make_user()
        return {"Authorization": f"Bearer {token_service.issue(str(user.user_id), phone_number=user.phone_number)}"}

    return _headers
