"""
Auth Module - Pydantic Schemas (DTOs)
NEVER expose SQLAlchemy models directly in API responses.
Always map them to Pydantic Schemas using model_validate.
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ============== Token Schemas ==============

class TokenPair(BaseModel):
    """Access + refresh token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class RefreshRequest(BaseModel):
    refresh_token: str


# ============== User Schemas ==============

class UserResponse(BaseModel):
    """Public profile of the authenticated user."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: EmailStr
    full_name: str
    degree: str | None = None
    university_id: uuid.UUID | None = None
    college_name: str | None = None
    current_semester: int | None = None
    profile_picture_url: str | None = None
    phone: str | None = None
    referral_code: str | None = None
    preferred_language: str
    role: str
    is_seller: bool
    is_admin: bool
    is_verified: bool
    created_at: datetime
    last_login: datetime | None = None


class AuthResponse(TokenPair):
    """Register / login response."""
    user: UserResponse


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    name: str = Field(..., min_length=2, max_length=255)
    degree: str | None = Field(None, max_length=100)
    university_id: uuid.UUID | None = None
    college_name: str | None = Field(None, max_length=255)
    current_semester: int | None = Field(None, ge=1, le=12)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=10)
    new_password: str = Field(..., min_length=8, max_length=100)


class ProfileUpdateRequest(BaseModel):
    """All fields optional; only the provided ones are updated."""
    full_name: str | None = Field(None, min_length=2, max_length=255)
    degree: str | None = Field(None, max_length=100)
    college_name: str | None = Field(None, max_length=255)
    current_semester: int | None = Field(None, ge=1, le=12)
    phone: str | None = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    profile_picture_url: str | None = None
    preferred_language: str | None = Field(None, max_length=10)


class MessageResponse(BaseModel):
    message: str
