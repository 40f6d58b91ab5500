import httpx
import pytest

from app.clients.author_client import AuthorClient
from app.dependencies import get_author_client
from app.main import app
from app.models.engagement import PostLike, PostView
from app.models.post import Post
from app.models.role import PostStatus
from tests.conftest import bearer_headers, create_post


class StubAuthorClient:
    def __init__(self, author: dict | None = None):
        self.author = author
        self.calls: list[tuple[str, str]] = []

    async def get_author(self, tenant_id: str, author_id: str) -> dict | None:
        self.calls.append((tenant_id, author_id))
        return self.author


@pytest.fixture
def author_client():
    stub = StubAuthorClient({"id": "author-1", "name": "Author", "avatar": None, "bio": "Writes"})
    app.dependency_overrides[get_author_client] = lambda: stub
    return stub


@pytest.fixture
def public_post(db_session, tenant):
    return create_post(db_session, tenant, slug="public-post")


@pytest.fixture
def private_post(db_session, tenant):
    return create_post(db_session, tenant, slug="private-post", status=PostStatus.PRIVATE)


class TestListPosts:
    """Tests for GET /api/posts visibility"""

    def test_anonymous_sees_public_only(self, client, tenant, public_post, private_post):
        response = client.get("/api/posts", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 200
        data = response.json()
        assert [post["slug"] for post in data["posts"]] == ["public-post"]
        assert data["total"] == 1

    def test_regular_user_sees_public_only(self, client, user_headers, public_post, private_post):
        response = client.get("/api/posts", headers=user_headers)

        assert response.json()["total"] == 1

    def test_admin_sees_all(self, client, admin_headers, public_post, private_post):
        response = client.get("/api/posts", headers=admin_headers)

        assert response.json()["total"] == 2

    def test_bad_token_degrades_to_anonymous(self, client, tenant, public_post, private_post):
        headers = {"x-tenant-name": tenant.name, "Authorization": "Bearer garbage"}

        response = client.get("/api/posts", headers=headers)

        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_other_tenant_posts_hidden(self, client, db_session, other_tenant, public_post):
        response = client.get("/api/posts", headers={"x-tenant-name": other_tenant.name})

        assert response.json()["total"] == 0


class TestCreateAndDeletePosts:
    """Tests for admin post management"""

    def test_create_post_becomes_featured(self, client, admin_headers):
        response = client.post(
            "/api/posts", json={"title": "Hello World", "content": "Body"}, headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "hello-world"
        assert data["featured"] is True

    def test_create_requires_admin(self, client, user_headers):
        response = client.post("/api/posts", json={"title": "Nope"}, headers=user_headers)

        assert response.status_code == 403

    def test_duplicate_explicit_slug(self, client, admin_headers, public_post):
        response = client.post(
            "/api/posts", json={"title": "Again", "slug": "public-post"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_bulk_delete(self, client, db_session, tenant, admin_headers, public_post, other_tenant):
        foreign = create_post(db_session, other_tenant, slug="foreign")
        db_session.add(PostLike(tenant_id=tenant.id, post_id=public_post.id, identity="user:x"))
        db_session.commit()
        foreign_id = foreign.id

        response = client.post(
            "/api/posts/bulk-delete", json={"ids": [public_post.id, foreign_id]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"deleted": 1}
        assert db_session.query(PostLike).count() == 0
        assert db_session.query(Post).filter(Post.id == foreign_id).count() == 1

    def test_bulk_delete_moves_featured(self, client, db_session, tenant, admin_headers):
        top = create_post(db_session, tenant, slug="top", view_count=100, featured=True)
        runner_up = create_post(db_session, tenant, slug="runner-up", view_count=10)

        client.post("/api/posts/bulk-delete", json={"ids": [top.id]}, headers=admin_headers)

        db_session.refresh(runner_up)
        assert runner_up.featured is True


class TestPostDetail:
    """Tests for GET /api/posts/{slug}"""

    def test_detail_records_one_view_per_day(self, client, db_session, tenant, public_post, author_client):
        headers = {"x-tenant-name": tenant.name}

        first = client.get("/api/posts/public-post", headers=headers)
        second = client.get("/api/posts/public-post", headers=headers)

        assert first.status_code == 200
        assert first.json()["is_new_view"] is True
        assert first.json()["view_count"] == 1
        assert second.json()["is_new_view"] is False
        assert second.json()["view_count"] == 1
        assert db_session.query(PostView).count() == 1

    def test_forwarded_ips_are_distinct_viewers(self, client, tenant, public_post, author_client):
        client.get(
            "/api/posts/public-post",
            headers={"x-tenant-name": tenant.name, "x-forwarded-for": "203.0.113.1"},
        )
        response = client.get(
            "/api/posts/public-post",
            headers={"x-tenant-name": tenant.name, "x-forwarded-for": "203.0.113.2, 10.0.0.1"},
        )

        assert response.json()["view_count"] == 2

    def test_author_attached(self, client, tenant, public_post, author_client):
        response = client.get("/api/posts/public-post", headers={"x-tenant-name": tenant.name})

        assert response.json()["author"]["name"] == "Author"
        assert author_client.calls == [(tenant.id, "author-1")]

    def test_missing_author_is_null(self, client, tenant, public_post):
        app.dependency_overrides[get_author_client] = lambda: StubAuthorClient(None)

        response = client.get("/api/posts/public-post", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 200
        assert response.json()["author"] is None

    def test_unexpected_author_payload_does_not_fail_detail(self, client, tenant, public_post):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=["unexpected"]))
        app.dependency_overrides[get_author_client] = lambda: AuthorClient(
            "http://auth", timeout=1.0, ttl_seconds=60, transport=transport
        )

        response = client.get("/api/posts/public-post", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 200
        assert response.json()["author"] is None
        assert response.json()["is_new_view"] is True

    def test_private_post_hidden_from_anonymous(self, client, tenant, private_post, author_client):
        response = client.get("/api/posts/private-post", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 404

    def test_private_post_visible_to_admin(self, client, admin_headers, private_post, author_client):
        response = client.get("/api/posts/private-post", headers=admin_headers)

        assert response.status_code == 200

    def test_featured_endpoint(self, client, db_session, tenant, author_client):
        create_post(db_session, tenant, slug="quiet", view_count=1)
        create_post(db_session, tenant, slug="busy", view_count=3)

        client.get("/api/posts/busy", headers={"x-tenant-name": tenant.name})
        response = client.get("/api/posts/featured", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 200
        assert response.json()["slug"] == "busy"

    def test_no_featured_post(self, client, tenant):
        response = client.get("/api/posts/featured", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 404


class TestLikes:
    """Tests for POST/GET /api/posts/{id}/like"""

    def test_anonymous_toggle(self, client, tenant, public_post):
        headers = {"x-tenant-name": tenant.name}

        liked = client.post(f"/api/posts/{public_post.id}/like", headers=headers)
        status = client.get(f"/api/posts/{public_post.id}/like", headers=headers)
        unliked = client.post(f"/api/posts/{public_post.id}/like", headers=headers)

        assert liked.json() == {"liked": True, "like_count": 1}
        assert status.json() == {"liked": True, "like_count": 1}
        assert unliked.json() == {"liked": False, "like_count": 0}

    def test_user_like_not_tracked_by_ip(self, client, db_session, tenant, regular_user, public_post):
        client.post(f"/api/posts/{public_post.id}/like", headers=bearer_headers(tenant, regular_user))

        anonymous = client.get(f"/api/posts/{public_post.id}/like", headers={"x-tenant-name": tenant.name})

        assert anonymous.json()["liked"] is False
        assert db_session.query(PostLike).one().identity == f"user:{regular_user.id}"

    def test_like_private_post_as_anonymous(self, client, tenant, private_post):
        response = client.post(f"/api/posts/{private_post.id}/like", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 404

    def test_like_moves_featured(self, client, db_session, tenant):
        viewed = create_post(db_session, tenant, slug="viewed", view_count=4, featured=True)
        liked = create_post(db_session, tenant, slug="liked", view_count=0)

        client.post(f"/api/posts/{liked.id}/like", headers={"x-tenant-name": tenant.name})

        db_session.refresh(viewed)
        db_session.refresh(liked)
        assert liked.featured is True
        assert viewed.featured is False
