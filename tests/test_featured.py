from datetime import datetime, timedelta, UTC

from app.models.post import Post
from app.models.role import PostStatus
from app.services.featured_service import FeaturedRanker, refresh_featured_best_effort, score
from tests.conftest import create_post, create_tenant

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def featured_ids(db_session, tenant_id: str) -> list[str]:
    return [
        post.id
        for post in db_session.query(Post)
        .filter(Post.tenant_id == tenant_id, Post.featured.is_(True))
        .all()
    ]


class TestScore:
    def test_like_is_worth_five_views(self, db_session, tenant):
        post = create_post(db_session, tenant, like_count=10, view_count=20)
        assert score(post) == 70


class TestRecomputeFeatured:
    """Tests for FeaturedRanker.recompute_featured"""

    def test_higher_score_wins_by_one_point(self, db_session, tenant):
        liked = create_post(db_session, tenant, slug="liked", like_count=10, view_count=20)
        viewed = create_post(db_session, tenant, slug="viewed", like_count=0, view_count=71)

        top = FeaturedRanker(db_session).recompute_featured(tenant.id)

        assert top.id == viewed.id
        assert featured_ids(db_session, tenant.id) == [viewed.id]
        db_session.refresh(liked)
        assert liked.featured is False

    def test_previous_featured_is_cleared(self, db_session, tenant):
        old = create_post(db_session, tenant, slug="old", featured=True, view_count=1)
        new = create_post(db_session, tenant, slug="new", view_count=50)

        FeaturedRanker(db_session).recompute_featured(tenant.id)

        assert featured_ids(db_session, tenant.id) == [new.id]
        db_session.refresh(old)
        assert old.featured is False

    def test_idempotent(self, db_session, tenant):
        create_post(db_session, tenant, slug="a", view_count=3)
        create_post(db_session, tenant, slug="b", like_count=1)
        ranker = FeaturedRanker(db_session)

        first = ranker.recompute_featured(tenant.id)
        second = ranker.recompute_featured(tenant.id)

        assert first.id == second.id
        assert featured_ids(db_session, tenant.id) == [first.id]

    def test_tie_goes_to_most_recently_published(self, db_session, tenant):
        create_post(db_session, tenant, slug="older", view_count=10, published_at=BASE_TIME)
        newer = create_post(
            db_session, tenant, slug="newer", view_count=10, published_at=BASE_TIME + timedelta(days=1)
        )

        top = FeaturedRanker(db_session).recompute_featured(tenant.id)

        assert top.id == newer.id

    def test_private_posts_are_not_candidates(self, db_session, tenant):
        create_post(db_session, tenant, slug="hidden", status=PostStatus.PRIVATE, view_count=1000)
        public = create_post(db_session, tenant, slug="public", view_count=1)

        top = FeaturedRanker(db_session).recompute_featured(tenant.id)

        assert top.id == public.id

    def test_no_public_posts(self, db_session, tenant):
        create_post(db_session, tenant, slug="hidden", status=PostStatus.PRIVATE)

        assert FeaturedRanker(db_session).recompute_featured(tenant.id) is None
        assert featured_ids(db_session, tenant.id) == []

    def test_tenants_ranked_independently(self, db_session, tenant):
        globex = create_tenant(db_session, name="globex")
        mine = create_post(db_session, tenant, slug="mine", view_count=1)
        theirs = create_post(db_session, globex, slug="theirs", view_count=500, featured=True)

        FeaturedRanker(db_session).recompute_featured(tenant.id)

        assert featured_ids(db_session, tenant.id) == [mine.id]
        assert featured_ids(db_session, globex.id) == [theirs.id]

    def test_best_effort_wrapper(self, db_session, tenant):
        post = create_post(db_session, tenant, view_count=5)

        refresh_featured_best_effort(db_session, tenant.id)

        db_session.refresh(post)
        assert post.featured is True
