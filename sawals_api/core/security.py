import hashlib
import hmac
import secrets
from dataclasses import dataclass

from sawals_api.core.errors import ValidationError


def generate_otp(length: int = 6) -> str:
    # Uniform over the whole space, zero-padded (000123 is a valid code).
    return str(secrets.randbelow(10**length)).zfill(length)


def generate_salt(length: int = 16) -> bytes:
    if length < 16:
        raise ValidationError("salt length must be at least 16 bytes")
    return secrets.token_bytes(length)


def hash_otp(code: str, salt: bytes, *, iterations: int = 10_000, dklen: int = 64) -> bytes:
    """
    PBKDF2-HMAC-SHA512 digest of a one-time code.

    Deterministic for a given (code, salt). Slow enough that a leaked table
    does not give the 10^6 code space away for free.
    """
    if not code:
        raise ValidationError("code must not be empty")
    if not salt:
        raise ValidationError("salt must not be empty")
    return hashlib.pbkdf2_hmac("sha512", code.encode("utf-8"), bytes(salt), iterations, dklen=dklen)


def verify_otp_hash(
    code: str,
    salt: bytes,
    expected_hash: bytes,
    *,
    iterations: int = 10_000,
    dklen: int = 64,
) -> bool:
    actual = hash_otp(code, salt, iterations=iterations, dklen=dklen)
    return hmac.compare_digest(actual, bytes(expected_hash))


@dataclass(frozen=True)
class Principal:
    sub: str
    phone_number: str | None = None
    email: str | None = None

    @property
    def user_id(self) -> int:
        return int(self.sub)

    @classmethod
    def from_claims(cls, claims: dict) -> "Principal":
        return cls(
            sub=str(claims["sub"]),
            phone_number=claims.get("phone_number"),
            email=claims.get("email"),
        )
