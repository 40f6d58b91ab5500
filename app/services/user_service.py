import logging
import math
from datetime import datetime, timedelta, UTC
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.config import settings
from app.core import admin_guard
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.principal import Principal
from app.models.role import UserRole, UserStatus
from app.models.user import User
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

ADMIN_SETTABLE_STATUSES = (UserStatus.ACTIVE, UserStatus.SUSPENDED)


class UserService:
    """Tenant admin operations on users"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def list_users(
        self,
        tenant_id: str,
        role: UserRole | None = None,
        status: UserStatus | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """
        List users of the tenant with pagination.

        Returns:
            Dict with users, total, page, limit, total_pages
        """
        users, total = self.user_repo.list_users(
            tenant_id, role=role, status=status, limit=limit, offset=(page - 1) * limit
        )
        return {
            "users": users,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    def _load_target(self, user_id: str, actor: Principal) -> User:
        # Tenant isolation and row lock in the same transaction as the write
        target = self.user_repo.get_for_update(user_id, actor.tenant_id)
        if not target:
            self.db.rollback()
            raise NotFoundError("User not found")
        return target

    def change_role(self, user_id: str, role: UserRole, actor: Principal) -> User:
        """
        Change a user's role.

        Args:
            user_id: Target user ID
            role: New role
            actor: Acting admin

        Returns:
            Updated user

        Raises:
            NotFoundError: If the user is not in the actor's tenant
            ForbiddenError: If the target is another admin
        """
        target = self._load_target(user_id, actor)
        try:
            admin_guard.ensure_can_change_role(actor, target)
        except ForbiddenError:
            self.db.rollback()
            raise
        target.role = role
        return self.user_repo.update(target)

    def change_status(self, user_id: str, status: UserStatus, actor: Principal) -> User:
        """
        Suspend or reactivate a user.

        Raises:
            ValidationError: If status is not ACTIVE or SUSPENDED
            NotFoundError: If the user is not in the actor's tenant
            ForbiddenError: If the target is another admin
        """
        if status not in ADMIN_SETTABLE_STATUSES:
            raise ValidationError("Status must be ACTIVE or SUSPENDED")

        target = self._load_target(user_id, actor)
        try:
            admin_guard.ensure_can_change_status(actor, target)
        except ForbiddenError:
            self.db.rollback()
            raise
        target.status = status
        return self.user_repo.update(target)

    def delete_user(self, user_id: str, actor: Principal) -> None:
        """
        Delete a non-admin user.

        Raises:
            NotFoundError: If the user is not in the actor's tenant
            ForbiddenError: If the target is an admin
        """
        target = self._load_target(user_id, actor)
        try:
            admin_guard.ensure_can_delete(target)
        except ForbiddenError:
            self.db.rollback()
            raise
        self.user_repo.delete(target)
        logger.info("User %s deleted by %s", user_id, actor.user_id)

    def get_stats(self, tenant_id: str, now: datetime | None = None) -> dict:
        """
        User counts by status and by registration window.

        Day, week (Monday start) and month boundaries are taken in
        VIEW_TIMEZONE so they line up with the daily view reset.
        """
        zone = ZoneInfo(settings.VIEW_TIMEZONE)
        local_now = (now or datetime.now(UTC)).astimezone(zone)
        today_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday_start = today_start - timedelta(days=1)
        this_week_start = today_start - timedelta(days=today_start.weekday())
        last_week_start = this_week_start - timedelta(days=7)
        this_month_start = today_start.replace(day=1)
        last_month_start = (this_month_start - timedelta(days=1)).replace(day=1)

        def window(start: datetime, end: datetime | None = None) -> int:
            return self.user_repo.count(
                tenant_id,
                created_from=start.astimezone(UTC),
                created_before=end.astimezone(UTC) if end else None,
            )

        total = self.user_repo.count(tenant_id)
        suspended = self.user_repo.count(tenant_id, status=UserStatus.SUSPENDED)
        return {
            "total_users": total,
            "suspended_users": suspended,
            "active_users": total - suspended,
            "today_new_users": window(today_start),
            "yesterday_new_users": window(yesterday_start, today_start),
            "this_week_new_users": window(this_week_start),
            "last_week_new_users": window(last_week_start, this_week_start),
            "this_month_new_users": window(this_month_start),
            "last_month_new_users": window(last_month_start, this_month_start),
        }

    def get_public_user(self, user_id: str, tenant_id: str | None) -> User:
        """
        Public profile lookup for author widgets.

        Scoped to the tenant when one was resolved; user ids are globally
        unique, so an unresolved tenant falls back to a plain id lookup.

        Raises:
            NotFoundError: If the user does not exist (in the tenant)
        """
        if tenant_id is None:
            user = self.user_repo.get_by_id_any_tenant(user_id)
        else:
            user = self.user_repo.get_by_id(user_id, tenant_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_basic_users(self, user_ids: list[str], tenant_id: str) -> list[User]:
        """Batch lookup for enrichment by sibling services"""
        return self.user_repo.get_many(user_ids, tenant_id)
