import pytest
import requests

from sawals_api.utils.captcha import SITEVERIFY_URL, CaptchaVerifier


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def post(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error:
            raise self.error
        return FakeResponse(self.payload)


@pytest.fixture
def configured(settings):
    return settings.model_copy(update={"recaptcha_secret_key": "secret"})


def test_not_configured(settings):
    result = CaptchaVerifier(settings, session=FakeSession()).verify("token")
    assert result.success is False
    assert result.message == "CAPTCHA verification not configured"


def test_missing_token(configured):
    assert CaptchaVerifier(configured, session=FakeSession()).verify(None).success is False


def test_human_score_passes(configured):
    session = FakeSession({"success": True, "score": 0.9, "action": "send_otp"})

    result = CaptchaVerifier(configured, session=session).verify("token", "10.0.0.1")

    assert result.success is True
    assert result.score == 0.9
    assert session.calls == [(SITEVERIFY_URL, {"secret": "secret", "response": "token", "remoteip": "10.0.0.1"})]


def test_low_score_fails(configured):
    result = CaptchaVerifier(configured, session=FakeSession({"success": True, "score": 0.2})).verify("token")
    assert result.success is False
    assert "suspicious" in result.message


def test_error_codes_in_message(configured):
    session = FakeSession({"success": False, "error-codes": ["invalid-input-response"]})
    result = CaptchaVerifier(configured, session=session).verify("token")
    assert result.message == "CAPTCHA verification failed: invalid-input-response"


def test_network_error(configured):
    session = FakeSession(error=requests.Timeout("slow"))
    result = CaptchaVerifier(configured, session=session).verify("token")
    assert result.success is False
    assert result.message == "Failed to verify CAPTCHA"
