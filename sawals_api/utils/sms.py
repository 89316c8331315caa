import logging
from typing import Protocol

import requests

from sawals_api.core.config import Settings
from sawals_api.core.log import mask_phone

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    def send(self, phone: str, message: str) -> bool: ...


def otp_message(otp: str, app_name: str = "Burning Sawals", ttl_minutes: int = 10) -> str:
    return f"Your OTP for {app_name} is: {otp}. Valid for {ttl_minutes} minutes."


class Fast2SmsSender:
    """
    Fast2SMS bulkV2 client.

    Without an API key the message is written to the log instead ("console"
    channel) and the send counts as delivered, so the login flow works on a
    laptop. Once a key is configured, provider errors report False.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.api_key = settings.fast2sms_api_key
        self.sender_id = settings.fast2sms_sender_id
        self.route = settings.fast2sms_route
        self.base_url = settings.fast2sms_base_url
        self.session = session or requests.Session()

    def missing_fields(self) -> list[str]:
        return [] if self.api_key else ["FAST2SMS_API_KEY"]

    @property
    def configured(self) -> bool:
        return not self.missing_fields()

    def send(self, phone: str, message: str) -> bool:
        if not self.configured:
            logger.info(
                "event=otp_sent channel=console reason=sms_not_configured phone=%s message=%r",
                mask_phone(phone),
                message,
            )
            return True

        params = {
            "authorization": self.api_key,
            "message": message,
            "numbers": phone,
            "route": self.route,
            "sender_id": self.sender_id,
        }
        try:
            resp = self.session.get(self.base_url, params=params, timeout=10)
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("event=sms_error phone=%s error=%s", mask_phone(phone), e)
            return False
        if not isinstance(data, dict):
            data = {}

        if resp.status_code // 100 == 2 and data.get("return") is True:
            logger.info(
                "event=otp_sent channel=sms phone=%s request_id=%s",
                mask_phone(phone),
                data.get("request_id"),
            )
            return True
        logger.warning(
            "event=sms_error phone=%s status=%s body=%s",
            mask_phone(phone),
            resp.status_code,
            str(data.get("message", data))[:200],
        )
        return False
