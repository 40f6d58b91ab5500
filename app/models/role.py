"""Role and status enums shared by users and posts."""

from enum import Enum as PyEnum


class UserRole(str, PyEnum):
    """
    Tenant-scoped user roles.

    ADMIN is the only privileged role. It is granted at OAuth login for
    allow-listed emails or by another admin, and is protected from
    peer modification and deletion.
    """

    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, PyEnum):
    """Account lifecycle status"""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class PostStatus(str, PyEnum):
    """Post visibility. Only PUBLIC posts take part in ranking."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
