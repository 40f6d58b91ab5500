from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.core.security import parse_duration


def _check_duration(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        parse_duration(value)
    except ValueError as e:
        raise ValueError("jwt_expiry must look like '7d', '12h', '30m' or '3600'") from e
    return value


class PasswordPolicySchema(BaseModel):
    """Tenant password policy"""

    min_length: int = Field(default=8, ge=1, le=128)
    require_uppercase: bool = True
    require_number: bool = True
    require_special: bool = False


class PasswordPolicyUpdate(BaseModel):
    """Partial password policy update"""

    min_length: int | None = Field(default=None, ge=1, le=128)
    require_uppercase: bool | None = None
    require_number: bool | None = None
    require_special: bool | None = None


class TenantCreate(BaseModel):
    """Create tenant (super-admin only)"""

    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$")
    domain: str = Field(..., min_length=1, max_length=255)
    jwt_expiry: str | None = Field(default=None, description="Token lifetime, e.g. '7d'")
    allow_registration: bool = True
    allow_google_oauth: bool = False
    google_client_id: str | None = None
    google_client_secret: str | None = None
    password_policy: PasswordPolicySchema = Field(default_factory=PasswordPolicySchema)

    @field_validator("jwt_expiry")
    @classmethod
    def validate_jwt_expiry(cls, value: str | None) -> str | None:
        return _check_duration(value)


class TenantUpdate(BaseModel):
    """Update tenant configuration (super-admin only)"""

    domain: str | None = Field(default=None, min_length=1, max_length=255)
    jwt_expiry: str | None = None
    allow_registration: bool | None = None
    allow_google_oauth: bool | None = None
    google_client_id: str | None = None
    google_client_secret: str | None = None
    password_policy: PasswordPolicyUpdate | None = None
    is_active: bool | None = None

    @field_validator("jwt_expiry")
    @classmethod
    def validate_jwt_expiry(cls, value: str | None) -> str | None:
        return _check_duration(value)


class TenantResponse(BaseModel):
    """Tenant details response. Signing secret and OAuth secret are never exposed."""

    id: str
    name: str
    domain: str
    jwt_expiry: str
    allow_registration: bool
    allow_google_oauth: bool
    google_client_id: str | None = None
    password_policy: PasswordPolicySchema
    is_active: bool
    user_count: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_tenant(cls, tenant, user_count: int | None = None) -> "TenantResponse":
        return cls(
            id=tenant.id,
            name=tenant.name,
            domain=tenant.domain,
            jwt_expiry=tenant.jwt_expiry,
            allow_registration=tenant.allow_registration,
            allow_google_oauth=tenant.allow_google_oauth,
            google_client_id=tenant.google_client_id,
            password_policy=PasswordPolicySchema(
                min_length=tenant.password_min_length,
                require_uppercase=tenant.password_require_uppercase,
                require_number=tenant.password_require_number,
                require_special=tenant.password_require_special,
            ),
            is_active=tenant.is_active,
            user_count=user_count,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )
