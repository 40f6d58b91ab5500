"""
Protection of privileged accounts.

Applied to a target user that was loaded (and locked) with the acting
tenant's id, before any admin mutation is written:

- role / status change: a target that is already ADMIN may only be changed
  by itself
- delete: an ADMIN target can never be deleted through the API, whoever
  the actor is
"""

import logging

from app.core.exceptions import ForbiddenError
from app.models.principal import Principal
from app.models.role import UserRole
from app.models.user import User

logger = logging.getLogger(__name__)


def _is_privileged(target: User) -> bool:
    return target.role == UserRole.ADMIN


def ensure_can_change_role(actor: Principal, target: User) -> None:
    """
    Raises:
        ForbiddenError: If target is another admin
    """
    if _is_privileged(target) and target.id != actor.user_id:
        logger.info("Blocked role change of admin %s by %s", target.id, actor.user_id)
        raise ForbiddenError("Cannot change another admin's role")


def ensure_can_change_status(actor: Principal, target: User) -> None:
    """
    Raises:
        ForbiddenError: If target is another admin
    """
    if _is_privileged(target) and target.id != actor.user_id:
        logger.info("Blocked status change of admin %s by %s", target.id, actor.user_id)
        raise ForbiddenError("Cannot change another admin's status")


def ensure_can_delete(target: User) -> None:
    """
    Raises:
        ForbiddenError: If target is an admin
    """
    if _is_privileged(target):
        logger.info("Blocked deletion of admin %s", target.id)
        raise ForbiddenError("Admin accounts cannot be deleted")
