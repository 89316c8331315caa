import re

VALID_LEADING_DIGITS = ("6", "7", "8", "9")


def _digits(phone: str) -> str:
    return re.sub(r"[^0-9]", "", phone or "")


def is_valid_phone_number(phone: str) -> bool:
    """Indian mobile: 10 digits starting 6-9. Every non-digit character is ignored."""
    if not isinstance(phone, str):
        return False
    digits = _digits(phone)
    return len(digits) == 10 and digits[0] in VALID_LEADING_DIGITS


def normalize_phone_number(phone: str) -> str:
    """Canonical 10-digit storage form; strips a leading 91 or 0."""
    cleaned = _digits(phone)
    if len(cleaned) == 12 and cleaned.startswith("91"):
        return cleaned[2:]
    if len(cleaned) == 11 and cleaned.startswith("0"):
        return cleaned[1:]
    return cleaned


def is_valid_otp(otp: str, length: int = 6) -> bool:
    return bool(re.fullmatch(rf"[0-9]{{{length}}}", otp or ""))
