from pydantic import BaseModel, Field


class OtpSendIn(BaseModel):
    phone_number: str
    captcha_token: str | None = None


class OtpSendOut(BaseModel):
    otp_id: str
    expires_in_seconds: int
    message: str = "OTP sent successfully"


class OtpVerifyIn(BaseModel):
    # Phone and OTP formats are checked by the service layer (400).
    phone_number: str
    otp: str
    user_name: str | None = Field(default=None, max_length=200)


class PhoneLoginIn(BaseModel):
    phone_number: str
    otp: str


class AuthUserOut(BaseModel):
    user_id: int
    phone_number: str | None
    user_name: str | None


class VerifiedUserOut(AuthUserOut):
    is_new_user: bool


class VerifyOut(BaseModel):
    token: str
    user: VerifiedUserOut


class LoginOut(BaseModel):
    token: str
    user: AuthUserOut


class UsernameCheckIn(BaseModel):
    user_name: str = Field(min_length=1, max_length=200, pattern=r"^[A-Za-z0-9_]+$")


class UsernameCheckOut(BaseModel):
    user_name: str
    available: bool


class UserOut(BaseModel):
    user_id: int
    user_name: str | None
    phone_number: str | None
    email: str | None
    auth_provider: str
    is_phone_verified: bool
    last_login_at: str | None
    created_at: str | None


class TokenOut(BaseModel):
    token: str
