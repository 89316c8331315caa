import logging
from dataclasses import dataclass

import requests

from sawals_api.core.config import Settings

logger = logging.getLogger(__name__)

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


@dataclass(frozen=True)
class CaptchaResult:
    success: bool
    message: str
    score: float | None = None
    action: str | None = None


class CaptchaVerifier:
    """reCAPTCHA v3 check. Scores run from 0.0 (bot) to 1.0 (human)."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.secret_key = settings.recaptcha_secret_key
        self.min_score = settings.recaptcha_min_score
        self.session = session or requests.Session()

    def verify(self, token: str | None, remote_ip: str | None = None) -> CaptchaResult:
        if not self.secret_key:
            return CaptchaResult(False, "CAPTCHA verification not configured")
        if not token:
            return CaptchaResult(False, "CAPTCHA token missing")

        params = {"secret": self.secret_key, "response": token}
        if remote_ip:
            params["remoteip"] = remote_ip
        try:
            resp = self.session.post(SITEVERIFY_URL, params=params, timeout=5)
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("CAPTCHA verification error: %s", e)
            return CaptchaResult(False, "Failed to verify CAPTCHA")

        score = data.get("score")
        action = data.get("action")
        if not data.get("success"):
            codes = data.get("error-codes") or []
            message = "CAPTCHA verification failed"
            if codes:
                message = f"{message}: {', '.join(codes)}"
            return CaptchaResult(False, message)

        if score is not None and score < self.min_score:
            return CaptchaResult(False, "CAPTCHA verification failed - suspicious activity detected", score, action)

        return CaptchaResult(True, "CAPTCHA verified successfully", score if score is not None else 1.0, action)
