import pytest
from datetime import datetime, timedelta, UTC
from zoneinfo import ZoneInfo

from app.config import Settings
from app.core.exceptions import ConfigurationError, NotFoundError
from app.models.engagement import PostLike, PostView
from app.models.principal import Principal
from app.services.engagement_service import (
    DailyResetPolicy,
    EngagementKind,
    EngagementService,
    RollingWindowPolicy,
    build_view_policy,
    get_client_ip,
    hash_ip,
    resolve_engagement_identity,
)
from tests.conftest import create_post

SEOUL = ZoneInfo("Asia/Seoul")
IP_HASH = hash_ip("203.0.113.7", "salt")


def seoul(*args) -> datetime:
    return datetime(*args, tzinfo=SEOUL)


@pytest.fixture
def post(db_session, tenant):
    return create_post(db_session, tenant)


@pytest.fixture
def daily_service(db_session):
    return EngagementService(db_session, DailyResetPolicy("Asia/Seoul"))


@pytest.fixture
def rolling_service(db_session):
    return EngagementService(db_session, RollingWindowPolicy(timedelta(hours=24)))


class TestIdentity:
    """Tests for the dedup key of a caller"""

    def test_hash_is_stable_and_salted(self):
        assert hash_ip("203.0.113.7", "salt") == IP_HASH
        assert hash_ip("203.0.113.7", "pepper") != IP_HASH
        assert "203.0.113.7" not in IP_HASH

    def test_first_forwarded_for_entry(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert get_client_ip(headers, "10.0.0.2") == "203.0.113.7"

    def test_socket_address_fallback(self):
        assert get_client_ip({}, "10.0.0.2") == "10.0.0.2"
        assert get_client_ip({}, None) == "unknown"

    def test_authenticated_caller_never_keyed_by_ip(self):
        principal = Principal(user_id="u-1", tenant_id="t", role="USER")
        headers = {"x-forwarded-for": "203.0.113.7"}

        assert resolve_engagement_identity(principal, headers, None, "salt") == "user:u-1"
        assert resolve_engagement_identity(None, headers, None, "salt") == IP_HASH


class TestViewPolicies:
    """Tests for view decay policies"""

    def test_daily_reset_crosses_local_midnight(self):
        policy = DailyResetPolicy("Asia/Seoul")
        assert policy.is_stale(seoul(2026, 3, 10, 23, 59), seoul(2026, 3, 11, 0, 1))

    def test_daily_reset_same_local_day(self):
        policy = DailyResetPolicy("Asia/Seoul")
        assert not policy.is_stale(seoul(2026, 3, 10, 0, 1), seoul(2026, 3, 10, 23, 59))

    def test_daily_reset_uses_local_not_utc_midnight(self):
        """00:30 UTC is 09:30 in Seoul: same local day as 08:00 Seoul"""
        policy = DailyResetPolicy("Asia/Seoul")
        last_seen = seoul(2026, 3, 10, 8, 0)
        now = datetime(2026, 3, 10, 0, 30, tzinfo=UTC)
        assert not policy.is_stale(last_seen, now)

    def test_naive_timestamps_are_utc(self):
        policy = DailyResetPolicy("Asia/Seoul")
        # 14:59 UTC = 23:59 Seoul
        assert policy.is_stale(datetime(2026, 3, 10, 14, 59), datetime(2026, 3, 10, 15, 1))

    def test_rolling_window(self):
        policy = RollingWindowPolicy(timedelta(hours=24))
        now = datetime(2026, 3, 11, 12, 0, tzinfo=UTC)

        assert not policy.is_stale(now - timedelta(hours=23, minutes=59), now)
        assert policy.is_stale(now - timedelta(hours=24, minutes=1), now)

    def test_rolling_window_ignores_midnight(self):
        policy = RollingWindowPolicy(timedelta(hours=24))
        assert not policy.is_stale(seoul(2026, 3, 10, 23, 59), seoul(2026, 3, 11, 0, 1))

    def test_build_view_policy(self):
        assert isinstance(build_view_policy(Settings(VIEW_DEDUP_POLICY="daily")), DailyResetPolicy)
        rolling = build_view_policy(Settings(VIEW_DEDUP_POLICY="rolling", VIEW_WINDOW_HOURS=6))
        assert isinstance(rolling, RollingWindowPolicy)
        assert rolling.window == timedelta(hours=6)

    def test_unknown_policy(self):
        with pytest.raises(ConfigurationError):
            build_view_policy(Settings(VIEW_DEDUP_POLICY="weekly"))


class TestRecordView:
    """Tests for deduplicated view counting"""

    def test_first_view_counts(self, db_session, tenant, post, daily_service):
        result = daily_service.record_engagement(
            tenant.id, post.id, IP_HASH, EngagementKind.VIEW, now=seoul(2026, 3, 10, 12, 0)
        )

        assert result.is_new_engagement is True
        assert result.current_count == 1

    def test_repeat_view_same_day_not_counted(self, db_session, tenant, post, daily_service):
        daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 9, 0))

        result = daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 18, 0))

        assert result.is_new_engagement is False
        assert result.current_count == 1

    def test_view_after_local_midnight_counts(self, db_session, tenant, post, daily_service):
        """23:59 then 00:01 local: two minutes apart but a new day"""
        daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 23, 59))

        result = daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 11, 0, 1))

        assert result.is_new_engagement is True
        assert result.current_count == 2

    def test_counter_matches_counted_views(self, db_session, tenant, post, daily_service):
        daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 23, 59))
        daily_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 11, 0, 1))

        view = db_session.query(PostView).one()

        assert view.seen_at.replace(tzinfo=UTC) == seoul(2026, 3, 11, 0, 1).astimezone(UTC)

    def test_distinct_identities_count_separately(self, db_session, tenant, post, daily_service):
        now = seoul(2026, 3, 10, 12, 0)
        daily_service.record_view(tenant.id, post.id, IP_HASH, now=now)

        result = daily_service.record_view(tenant.id, post.id, "user:u-1", now=now)

        assert result.is_new_engagement is True
        assert result.current_count == 2

    def test_rolling_policy_within_window(self, db_session, tenant, post, rolling_service):
        rolling_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 23, 59))

        result = rolling_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 11, 0, 1))

        assert result.is_new_engagement is False

    def test_rolling_policy_after_window(self, db_session, tenant, post, rolling_service):
        rolling_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 10, 10, 0))

        result = rolling_service.record_view(tenant.id, post.id, IP_HASH, now=seoul(2026, 3, 11, 10, 1))

        assert result.is_new_engagement is True
        assert result.current_count == 2

    def test_post_of_other_tenant(self, db_session, other_tenant, post, daily_service):
        with pytest.raises(NotFoundError):
            daily_service.record_view(other_tenant.id, post.id, IP_HASH)


class TestToggleLike:
    """Tests for the like toggle"""

    def test_toggle_law(self, db_session, tenant, post, daily_service):
        """like then unlike: true, false, and the counter is back where it was"""
        before = post.like_count

        first = daily_service.record_engagement(tenant.id, post.id, "user:u-1", EngagementKind.LIKE)
        second = daily_service.record_engagement(tenant.id, post.id, "user:u-1", EngagementKind.LIKE)

        assert first.is_new_engagement is True
        assert first.current_count == before + 1
        assert second.is_new_engagement is False
        assert second.current_count == before
        assert db_session.query(PostLike).count() == 0

    def test_likes_from_different_identities(self, db_session, tenant, post, daily_service):
        daily_service.toggle_like(tenant.id, post.id, "user:u-1")
        result = daily_service.toggle_like(tenant.id, post.id, IP_HASH)

        assert result.current_count == 2
        assert daily_service.is_liked(tenant.id, post.id, IP_HASH)
        assert not daily_service.is_liked(tenant.id, post.id, "user:u-2")

    def test_like_count_equals_live_records(self, db_session, tenant, post, daily_service):
        for identity in ["user:a", "user:b", "user:c", "user:a"]:
            daily_service.toggle_like(tenant.id, post.id, identity)

        db_session.refresh(post)
        assert post.like_count == db_session.query(PostLike).count() == 2

    def test_like_missing_post(self, db_session, tenant, daily_service):
        with pytest.raises(NotFoundError):
            daily_service.toggle_like(tenant.id, "missing", "user:u-1")
