"""Tenant model for multi-tenant isolation."""

from sqlalchemy import String, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.user import User


class Tenant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Isolated blog site boundary.

    Every user, post and engagement record belongs to exactly one tenant.
    A tenant carries its own security configuration:

    - jwt_secret: 512-bit hex secret generated at creation (HMAC mode only,
      never returned by the API)
    - jwt_expiry: token lifetime as a duration string ("7d", "12h")
    - registration / OAuth switches and optional Google client credentials
    - password policy thresholds

    Tenants are never hard-deleted; is_active=False deactivates them.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)

    jwt_secret: Mapped[str] = mapped_column(String(128), nullable=False)
    jwt_expiry: Mapped[str] = mapped_column(String(20), nullable=False, default="7d")

    allow_registration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_google_oauth: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    google_client_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_client_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)

    password_min_length: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    password_require_uppercase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    password_require_number: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    password_require_special: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}')>"
