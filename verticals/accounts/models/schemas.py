"""Pydantic schemas for account request validation."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from core.security import MAX_PASSWORD_BYTES
from patterns.access_policy import Role


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class _EmailNormalizer(BaseModel):
    @field_validator("email", mode="after", check_fields=False)
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value else value


class _NewPassword(_EmailNormalizer):
    @field_validator("password", mode="after", check_fields=False)
    @classmethod
    def fits_bcrypt(cls, value: str) -> str:
        # bcrypt only looks at the first 72 bytes and rejects longer input.
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class RegisterRequest(_NewPassword):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(_EmailNormalizer):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserCreate(_NewPassword):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role


class UserUpdate(_EmailNormalizer):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class AuthResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    token: str
