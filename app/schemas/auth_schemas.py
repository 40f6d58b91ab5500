from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.models.role import UserRole, UserStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    """Register with email and password"""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=50)


class LoginRequest(BaseModel):
    """Login with email and password"""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class GoogleLoginRequest(BaseModel):
    """Login with a Google ID token"""

    credential: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    """User info returned with a token"""

    id: str
    email: str
    name: str
    avatar: str | None = None
    role: UserRole

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Token plus the authenticated user"""

    token: str
    user: UserSummary


class TokenResponse(BaseModel):
    """Refreshed token"""

    token: str


class MeResponse(BaseModel):
    """Current user profile"""

    id: str
    email: str
    name: str
    avatar: str | None = None
    bio: str | None = None
    role: UserRole
    status: UserStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class MeUpdate(BaseModel):
    """Update own profile. Empty avatar/bio clears the field."""

    name: str | None = Field(default=None, max_length=50)
    avatar: str | None = Field(default=None, max_length=500)
    bio: str | None = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class ChangePasswordRequest(BaseModel):
    """Change own password"""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str
