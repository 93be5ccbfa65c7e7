import re
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, Dict, Any

from ecotrack.schemas.profile_schema import ProfileResponse

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.]{3,30}$")


class Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class SignUpRequest(Credentials):
    username: str
    full_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        value = value.strip()
        if not _USERNAME_RE.match(value):
            raise ValueError("Username must be 3-30 letters, digits, '_' or '.'")
        return value


class LoginRequest(Credentials):
    pass


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., min_length=6, max_length=6)
    type: str = "signup"


class ResendOtpRequest(BaseModel):
    email: EmailStr


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    requires_verification: bool = True
    message: str = "Account created successfully! Please check your email for the verification code."


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user: Dict[str, Any] = {}
    profile: Optional[ProfileResponse] = None


class ConfirmRequest(BaseModel):
    confirmation: str


class MessageResponse(BaseModel):
    message: str

    model_config = ConfigDict(from_attributes=True)
