"""Repository for Tenant model operations."""

from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.tenant import Tenant
from app.models.user import User


class TenantRepository:
    """Repository for Tenant model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tenant_id: str) -> Tenant | None:
        """
        Get tenant by ID.

        Args:
            tenant_id: Tenant ID

        Returns:
            Tenant object or None if not found
        """
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    def get_by_name(self, name: str) -> Tenant | None:
        """
        Get tenant by its unique name.

        Args:
            name: Tenant name (also used as subdomain label)

        Returns:
            Tenant object or None if not found
        """
        return self.db.query(Tenant).filter(Tenant.name == name).first()

    def get_all_with_user_counts(self) -> list[tuple[Tenant, int]]:
        """
        Get all tenants, newest first, with their user counts.

        Returns:
            List of (Tenant, user_count) tuples
        """
        user_counts = (
            self.db.query(User.tenant_id, func.count(User.id).label("user_count"))
            .group_by(User.tenant_id)
            .subquery()
        )
        rows = (
            self.db.query(Tenant, func.coalesce(user_counts.c.user_count, 0))
            .outerjoin(user_counts, user_counts.c.tenant_id == Tenant.id)
            .order_by(Tenant.created_at.desc())
            .all()
        )
        return [(tenant, int(count)) for tenant, count in rows]

    def count_users(self, tenant_id: str) -> int:
        """Number of users owned by a tenant"""
        return self.db.query(func.count(User.id)).filter(User.tenant_id == tenant_id).scalar() or 0

    def create(self, tenant: Tenant) -> Tenant:
        """
        Create a new tenant.

        Args:
            tenant: Tenant object to create

        Returns:
            Created Tenant object with ID populated

        Raises:
            IntegrityError: If the tenant name already exists
        """
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        """
        Update an existing tenant.

        Args:
            tenant: Tenant object with updated fields

        Returns:
            Updated Tenant object
        """
        self.db.commit()
        self.db.refresh(tenant)
        return tenant
