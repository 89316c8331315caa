"""
Google OAuth 2.0 authorization-code flow.

`state` is a short-lived HS256 token signed with the API secret, so the
callback can be checked without server-side session storage.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from urllib.parse import urlencode

import jwt
import requests

from sawals_api.core.config import Settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "email", "profile")
STATE_TTL_SECONDS = 10 * 60
STATE_PURPOSE = "google_oauth_state"


class GoogleAuthError(Exception):
    pass


@dataclass(frozen=True)
class GoogleProfile:
    email: str
    name: str | None
    subject: str | None = None


class GoogleOAuthClient:
    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_url = settings.google_redirect_url
        self.state_secret = settings.jwt_signing_secret
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def make_state(self) -> str:
        now = int(time.time())
        payload = {"purpose": STATE_PURPOSE, "nonce": secrets.token_urlsafe(16), "iat": now, "exp": now + STATE_TTL_SECONDS}
        return jwt.encode(payload, self.state_secret, algorithm="HS256")

    def check_state(self, state: str | None) -> None:
        if not state:
            raise GoogleAuthError("missing state")
        try:
            payload = jwt.decode(state, self.state_secret, algorithms=["HS256"], options={"require": ["exp"]})
        except jwt.InvalidTokenError as e:
            raise GoogleAuthError(f"invalid state: {type(e).__name__}") from e
        if payload.get("purpose") != STATE_PURPOSE:
            raise GoogleAuthError("invalid state purpose")

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": self.make_state(),
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_url,
            "grant_type": "authorization_code",
        }
        try:
            resp = self.session.post(TOKEN_URL, data=data, timeout=10)
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GoogleAuthError(f"token exchange failed: {e}") from e
        access_token = body.get("access_token") if isinstance(body, dict) else None
        if resp.status_code // 100 != 2 or not access_token:
            raise GoogleAuthError(f"token exchange rejected status={resp.status_code}")
        return access_token

    def fetch_profile(self, access_token: str) -> GoogleProfile:
        try:
            resp = self.session.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}, timeout=10)
            info = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GoogleAuthError(f"userinfo failed: {e}") from e
        if resp.status_code // 100 != 2 or not isinstance(info, dict):
            raise GoogleAuthError(f"userinfo rejected status={resp.status_code}")

        email = info.get("email")
        if not email:
            raise GoogleAuthError("No email returned from Google")
        name = info.get("name") or " ".join(p for p in (info.get("given_name"), info.get("family_name")) if p) or None
        return GoogleProfile(email=email, name=name, subject=info.get("sub"))

    def authenticate(self, code: str | None, state: str | None) -> GoogleProfile:
        self.check_state(state)
        if not code:
            raise GoogleAuthError("missing code")
        return self.fetch_profile(self.exchange_code(code))
