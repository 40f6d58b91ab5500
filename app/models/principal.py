"""Resolved acting identity for a request."""

from dataclasses import dataclass

from app.models.role import UserRole


@dataclass(frozen=True)
class Principal:
    """
    Acting identity for a request.

    Produced either from trusted upstream headers or from a verified
    bearer token, always scoped to the tenant the request resolved to.

    Attributes:
        user_id: Acting user id
        tenant_id: Tenant the principal acts in
        role: Role string as asserted by the identity source
        email: Email, empty when the source didn't provide one
        source: "upstream" or "bearer"
    """

    user_id: str
    tenant_id: str
    role: str
    email: str = ""
    source: str = "bearer"

    def is_admin(self) -> bool:
        """Check if principal holds the privileged role."""
        return self.role == UserRole.ADMIN.value

    @property
    def engagement_identity(self) -> str:
        """Dedup key used for views and likes"""
        return f"user:{self.user_id}"

    def __repr__(self) -> str:
        return f"<Principal(user_id={self.user_id}, tenant_id={self.tenant_id}, role={self.role})>"
