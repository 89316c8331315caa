"""
Bearer tokens: claims are signed (HS256 JWS) and the compact JWS is then
encrypted (RSA-OAEP-256 + A256GCM JWE). Only the JWE leaves the server.

The four steps are plain functions so each layer can be exercised on its
own; `TokenService` composes them with the configured keys.
"""
import logging
from datetime import datetime, timezone

import jwt
from jwcrypto import jwe, jwk
from jwcrypto.common import JWException, json_encode

from sawals_api.core.config import Settings
from sawals_api.core.errors import Unauthorized

logger = logging.getLogger(__name__)

SIGNING_ALG = "HS256"
KEY_MGMT_ALG = "RSA-OAEP-256"
CONTENT_ENC = "A256GCM"


def load_jwk(raw: str, *, name: str, private: bool = False) -> jwk.JWK:
    try:
        key = jwk.JWK.from_json(raw)
    except (JWException, ValueError, TypeError) as e:
        raise RuntimeError(f"{name} is not a valid JWK: {e}") from e
    if key.get("kty") != "RSA":
        raise RuntimeError(f"{name} must be an RSA key")
    if private and not key.has_private:
        raise RuntimeError(f"{name} does not contain a private key")
    return key


def sign_claims(claims: dict, secret: str) -> str:
    return jwt.encode(claims, secret, algorithm=SIGNING_ALG, headers={"typ": "JWT"})


def verify_claims(token: str, secret: str, *, issuer: str, audience: str) -> dict:
    return jwt.decode(
        token,
        secret,
        algorithms=[SIGNING_ALG],
        audience=audience,
        issuer=issuer,
        options={"require": ["sub", "iat", "exp", "iss", "aud"]},
    )


def encrypt_token(signed: str, public_key: jwk.JWK, *, kid: str | None = None) -> str:
    protected = {"alg": KEY_MGMT_ALG, "enc": CONTENT_ENC, "typ": "JWE"}
    if kid:
        protected["kid"] = kid
    token = jwe.JWE(signed.encode("utf-8"), json_encode(protected))
    token.add_recipient(public_key)
    return token.serialize(compact=True)


def decrypt_token(encrypted: str, private_key: jwk.JWK) -> str:
    token = jwe.JWE()
    token.deserialize(encrypted, key=private_key)
    return token.payload.decode("utf-8")


class TokenService:
    def __init__(
        self,
        *,
        signing_secret: str,
        public_key: jwk.JWK,
        private_key: jwk.JWK,
        issuer: str,
        audience: str,
        ttl_seconds: int,
        kid: str | None = None,
    ) -> None:
        self.signing_secret = signing_secret
        self.public_key = public_key
        self.private_key = private_key
        self.issuer = issuer
        self.audience = audience
        self.ttl_seconds = ttl_seconds
        self.kid = kid

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            signing_secret=settings.jwt_signing_secret,
            public_key=load_jwk(settings.jwt_enc_public_jwk, name="JWT_ENC_PUBLIC_JWK"),
            private_key=load_jwk(settings.jwt_enc_private_jwk, name="JWT_ENC_PRIVATE_JWK", private=True),
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            ttl_seconds=settings.access_token_ttl_seconds,
            kid=settings.jwt_enc_key_id,
        )

    def build_claims(
        self,
        subject: str,
        *,
        phone_number: str | None = None,
        email: str | None = None,
        now: datetime | None = None,
    ) -> dict:
        issued = int((now or datetime.now(timezone.utc)).timestamp())
        claims: dict = {
            "sub": str(subject),
            "iat": issued,
            "exp": issued + self.ttl_seconds,
            "iss": self.issuer,
            "aud": self.audience,
        }
        if phone_number:
            claims["phone_number"] = phone_number
        if email:
            claims["email"] = email
        return claims

    def encode(self, claims: dict) -> str:
        return encrypt_token(sign_claims(claims, self.signing_secret), self.public_key, kid=self.kid)

    def issue(
        self,
        subject: str,
        *,
        phone_number: str | None = None,
        email: str | None = None,
        now: datetime | None = None,
    ) -> str:
        return self.encode(self.build_claims(subject, phone_number=phone_number, email=email, now=now))

    def authenticate(self, token: str) -> dict:
        # Both layers collapse into one outcome so callers cannot tell which check failed.
        try:
            signed = decrypt_token(token, self.private_key)
            return verify_claims(signed, self.signing_secret, issuer=self.issuer, audience=self.audience)
        except (JWException, jwt.InvalidTokenError, ValueError, TypeError) as e:
            logger.info("event=token_rejected reason=%s", type(e).__name__)
            raise Unauthorized() from e
