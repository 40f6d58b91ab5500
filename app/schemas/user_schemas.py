from pydantic import BaseModel, Field
from datetime import datetime

from app.models.role import UserRole, UserStatus


class UserAdminResponse(BaseModel):
    """User as seen by tenant admins"""

    id: str
    email: str
    name: str
    avatar: str | None = None
    role: UserRole
    status: UserStatus
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """Paginated user list"""

    users: list[UserAdminResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class UserRoleUpdate(BaseModel):
    """Change a user's role (ADMIN only)"""

    role: UserRole = Field(..., description="New role to assign")


class UserStatusUpdate(BaseModel):
    """Suspend or reactivate a user (ADMIN only)"""

    status: UserStatus = Field(..., description="ACTIVE or SUSPENDED")


class UserStatsResponse(BaseModel):
    """User counts for the admin dashboard"""

    total_users: int
    suspended_users: int
    active_users: int
    today_new_users: int
    yesterday_new_users: int
    this_week_new_users: int
    last_week_new_users: int
    this_month_new_users: int
    last_month_new_users: int


class PublicUserResponse(BaseModel):
    """Public author profile used by sibling services"""

    id: str
    name: str
    avatar: str | None = None
    bio: str | None = None

    model_config = {"from_attributes": True}


class PublicUserEnvelope(BaseModel):
    """Wrapper expected by the author enrichment client"""

    data: PublicUserResponse


class BasicUsersResponse(BaseModel):
    """Batch lookup result for the comment service"""

    data: list[PublicUserResponse]
