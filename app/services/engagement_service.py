"""
Deduplication of views and likes.

A view or like is keyed by (tenant, post, identity). identity is
"user:<id>" for authenticated callers and a salted SHA-256 of the client
IP otherwise; a call uses exactly one of the two.

Views decay. Which decay applies is configuration (VIEW_DEDUP_POLICY):

- DailyResetPolicy: a record seen before the most recent local midnight in
  VIEW_TIMEZONE is stale.
- RollingWindowPolicy: a record older than VIEW_WINDOW_HOURS is stale.

A missing or stale record counts as a new view; the record timestamp and
the post's view_count change in the same transaction.

Likes toggle: an existing record is removed and like_count decremented,
otherwise a record is created and like_count incremented, again in one
transaction.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from enum import Enum as PyEnum
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings
from app.core.exceptions import ConfigurationError, NotFoundError
from app.models.engagement import PostLike, PostView
from app.models.principal import Principal
from app.repositories.engagement_repository import EngagementRepository
from app.repositories.post_repository import PostRepository

logger = logging.getLogger(__name__)


class EngagementKind(str, PyEnum):
    VIEW = "view"
    LIKE = "like"


@dataclass(frozen=True)
class EngagementResult:
    """Outcome of one engagement call"""

    is_new_engagement: bool
    current_count: int


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ViewDecayPolicy(ABC):
    """Decides when a view record stops suppressing new views"""

    name: str

    @abstractmethod
    def is_stale(self, last_seen: datetime, now: datetime) -> bool:
        pass


class DailyResetPolicy(ViewDecayPolicy):
    """Views reset at local midnight of a configured time zone"""

    name = "daily"

    def __init__(self, timezone: str | ZoneInfo):
        self.zone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    def window_start(self, now: datetime) -> datetime:
        """Most recent local midnight, in UTC"""
        local_now = _as_utc(now).astimezone(self.zone)
        midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight.astimezone(UTC)

    def is_stale(self, last_seen: datetime, now: datetime) -> bool:
        return _as_utc(last_seen) < self.window_start(now)


class RollingWindowPolicy(ViewDecayPolicy):
    """Views reset a fixed duration after the last counted view"""

    name = "rolling"

    def __init__(self, window: timedelta):
        self.window = window

    def is_stale(self, last_seen: datetime, now: datetime) -> bool:
        return _as_utc(last_seen) < _as_utc(now) - self.window


def build_view_policy(config: Settings) -> ViewDecayPolicy:
    """
    Raises:
        ConfigurationError: If VIEW_DEDUP_POLICY is unknown
    """
    policy = config.VIEW_DEDUP_POLICY.lower()
    if policy == "daily":
        return DailyResetPolicy(config.VIEW_TIMEZONE)
    if policy == "rolling":
        return RollingWindowPolicy(timedelta(hours=config.VIEW_WINDOW_HOURS))
    raise ConfigurationError(f"Unknown VIEW_DEDUP_POLICY: {config.VIEW_DEDUP_POLICY}")


def hash_ip(ip: str, salt: str) -> str:
    """One-way hash of a client IP"""
    return hashlib.sha256((ip + salt).encode("utf-8")).hexdigest()


def get_client_ip(headers: Mapping[str, str], socket_host: str | None) -> str:
    """First x-forwarded-for entry, else the socket peer address"""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return socket_host or "unknown"


def resolve_engagement_identity(
    principal: Principal | None,
    headers: Mapping[str, str],
    socket_host: str | None,
    salt: str,
) -> str:
    """
    Dedup key of the caller.

    Authenticated callers are keyed by user id only, never by IP.
    """
    if principal is not None:
        return principal.engagement_identity
    return hash_ip(get_client_ip(headers, socket_host), salt)


class EngagementService:
    """Records deduplicated views and toggles likes"""

    def __init__(self, db: Session, view_policy: ViewDecayPolicy):
        self.db = db
        self.view_policy = view_policy
        self.post_repo = PostRepository(db)
        self.engagement_repo = EngagementRepository(db)

    def record_engagement(
        self,
        tenant_id: str,
        post_id: str,
        identity: str,
        kind: EngagementKind,
        now: datetime | None = None,
    ) -> EngagementResult:
        """
        Record a view or toggle a like.

        Args:
            tenant_id: Tenant ID
            post_id: Post ID (must belong to the tenant)
            identity: "user:<id>" or IP hash
            kind: VIEW or LIKE
            now: Current time, for tests

        Returns:
            EngagementResult with the post's counter after the call

        Raises:
            NotFoundError: If the post is not in the tenant
        """
        if kind == EngagementKind.VIEW:
            return self.record_view(tenant_id, post_id, identity, now=now)
        return self.toggle_like(tenant_id, post_id, identity)

    def record_view(
        self, tenant_id: str, post_id: str, identity: str, now: datetime | None = None
    ) -> EngagementResult:
        now = _as_utc(now or datetime.now(UTC))
        counted = False
        try:
            post = self.post_repo.lock(post_id, tenant_id)
            if not post:
                raise NotFoundError("Post not found")

            view = self.engagement_repo.get_view(tenant_id, post_id, identity)
            if view is None:
                self.engagement_repo.add_view(
                    PostView(tenant_id=tenant_id, post_id=post_id, identity=identity, seen_at=now)
                )
                counted = True
            elif self.view_policy.is_stale(view.seen_at, now):
                view.seen_at = now
                counted = True

            if counted:
                self.post_repo.add_to_counters(post_id, views=1)
            self.db.commit()
        except IntegrityError:
            # A concurrent request created the record and counted this view
            self.db.rollback()
            counted = False
        except NotFoundError:
            self.db.rollback()
            raise

        post = self.post_repo.get_by_id(post_id, tenant_id)
        return EngagementResult(is_new_engagement=counted, current_count=post.view_count)

    def toggle_like(self, tenant_id: str, post_id: str, identity: str) -> EngagementResult:
        liked = False
        for attempt in range(2):
            try:
                post = self.post_repo.lock(post_id, tenant_id)
                if not post:
                    raise NotFoundError("Post not found")

                like = self.engagement_repo.get_like(tenant_id, post_id, identity)
                if like is not None:
                    liked = False
                    if self.engagement_repo.delete_like(like.id):
                        self.post_repo.add_to_counters(post_id, likes=-1)
                else:
                    liked = True
                    self.engagement_repo.add_like(
                        PostLike(tenant_id=tenant_id, post_id=post_id, identity=identity)
                    )
                    self.post_repo.add_to_counters(post_id, likes=1)
                self.db.commit()
                break
            except IntegrityError:
                # Concurrent like from the same identity; re-read and toggle again
                self.db.rollback()
                if attempt:
                    raise
                logger.debug("Retrying like toggle on post %s after conflict", post_id)
            except NotFoundError:
                self.db.rollback()
                raise

        post = self.post_repo.get_by_id(post_id, tenant_id)
        return EngagementResult(is_new_engagement=liked, current_count=post.like_count)

    def is_liked(self, tenant_id: str, post_id: str, identity: str) -> bool:
        return self.engagement_repo.get_like(tenant_id, post_id, identity) is not None
