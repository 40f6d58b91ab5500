from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.user import User
from app.models.role import UserRole, UserStatus


class UserRepository:
    """Repository for User model operations. Every query is tenant-scoped."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str, tenant_id: str) -> User | None:
        """Get user by ID within a tenant"""
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.tenant_id == tenant_id)
            .first()
        )

    def get_by_id_any_tenant(self, user_id: str) -> User | None:
        """Get user by globally unique ID, ignoring tenant (internal lookups only)"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_for_update(self, user_id: str, tenant_id: str) -> User | None:
        """
        Get user by ID within a tenant and lock the row.

        The lock is held until the caller commits, so checks made on the
        returned row and the write that follows happen in one transaction.
        """
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.tenant_id == tenant_id)
            .with_for_update()
            .first()
        )

    def get_by_email(self, email: str, tenant_id: str) -> User | None:
        """Get user by email within a tenant"""
        return (
            self.db.query(User)
            .filter(User.email == email, User.tenant_id == tenant_id)
            .first()
        )

    def get_by_google_id(self, google_id: str, tenant_id: str) -> User | None:
        """Get user by Google subject id within a tenant"""
        return (
            self.db.query(User)
            .filter(User.google_id == google_id, User.tenant_id == tenant_id)
            .first()
        )

    def get_many(self, user_ids: list[str], tenant_id: str) -> list[User]:
        """Get several users of a tenant by ID (missing ids are skipped)"""
        if not user_ids:
            return []
        return (
            self.db.query(User)
            .filter(User.id.in_(user_ids), User.tenant_id == tenant_id)
            .all()
        )

    def list_users(
        self,
        tenant_id: str,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[User], int]:
        """
        List users of a tenant, newest first.

        Args:
            tenant_id: Tenant ID
            role: Optional role filter
            status: Optional status filter
            limit: Page size
            offset: Pagination offset

        Returns:
            Tuple of (users, total_count)
        """
        query = self.db.query(User).filter(User.tenant_id == tenant_id)
        if role is not None:
            query = query.filter(User.role == role)
        if status is not None:
            query = query.filter(User.status == status)

        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return users, total

    def count(
        self,
        tenant_id: str,
        status: UserStatus | None = None,
        created_from: datetime | None = None,
        created_before: datetime | None = None,
    ) -> int:
        """Count users of a tenant, optionally by status and creation window"""
        query = self.db.query(func.count(User.id)).filter(User.tenant_id == tenant_id)
        if status is not None:
            query = query.filter(User.status == status)
        if created_from is not None:
            query = query.filter(User.created_at >= created_from)
        if created_before is not None:
            query = query.filter(User.created_at < created_before)
        return query.scalar() or 0

    def create(self, user: User) -> User:
        """
        Create a new user.

        Raises:
            IntegrityError: If (tenant_id, email) already exists
        """
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        """Commit pending changes on a user"""
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        """Delete a user"""
        self.db.delete(user)
        self.db.commit()
