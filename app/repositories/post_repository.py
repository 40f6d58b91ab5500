from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from app.models.post import Post
from app.models.role import PostStatus


class PostRepository:
    """Repository for Post data access. Every query is tenant-scoped."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, post: Post) -> Post:
        """Create a new post"""
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post

    def get_by_id(self, post_id: str, tenant_id: str) -> Post | None:
        """Get post by ID within a tenant"""
        return (
            self.db.query(Post)
            .filter(Post.id == post_id, Post.tenant_id == tenant_id)
            .first()
        )

    def get_by_slug(self, slug: str, tenant_id: str) -> Post | None:
        """Get post by slug within a tenant"""
        return (
            self.db.query(Post)
            .filter(Post.slug == slug, Post.tenant_id == tenant_id)
            .first()
        )

    def lock(self, post_id: str, tenant_id: str) -> Post | None:
        """
        Get post by ID and lock its row until commit/rollback.

        Serializes concurrent counter updates on the same post.
        """
        return (
            self.db.query(Post)
            .filter(Post.id == post_id, Post.tenant_id == tenant_id)
            .with_for_update()
            .first()
        )

    def add_to_counters(self, post_id: str, views: int = 0, likes: int = 0) -> None:
        """
        Atomically adjust counters in SQL (no read-modify-write).
        Caller is responsible for commit.
        """
        self.db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(view_count=Post.view_count + views, like_count=Post.like_count + likes)
            .execution_options(synchronize_session=False)
        )

    def list_posts(
        self,
        tenant_id: str,
        statuses: list[PostStatus],
        featured_only: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Post], int]:
        """
        List posts of a tenant, most recently published first.

        Returns:
            Tuple of (posts, total_count)
        """
        query = self.db.query(Post).filter(Post.tenant_id == tenant_id, Post.status.in_(statuses))
        if featured_only:
            query = query.filter(Post.featured.is_(True))
        total = query.count()
        posts = query.order_by(Post.published_at.desc(), Post.id).offset(offset).limit(limit).all()
        return posts, total

    def get_public_for_ranking(self, tenant_id: str) -> list[Post]:
        """
        Lock and return all PUBLIC posts of a tenant in ranking order:
        most recently published first, then by id.
        """
        return (
            self.db.query(Post)
            .filter(Post.tenant_id == tenant_id, Post.status == PostStatus.PUBLIC)
            .order_by(Post.published_at.desc(), Post.id)
            .with_for_update()
            .all()
        )

    def clear_featured_except(self, tenant_id: str, keep_post_id: str) -> int:
        """
        Clear the featured flag on every post of the tenant but one.
        Caller is responsible for commit.

        Returns:
            Number of posts un-featured
        """
        result = self.db.execute(
            update(Post)
            .where(Post.tenant_id == tenant_id, Post.featured.is_(True), Post.id != keep_post_id)
            .values(featured=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_many(self, post_ids: list[str], tenant_id: str) -> int:
        """
        Delete posts of a tenant by ID.

        Returns:
            Number of deleted posts
        """
        if not post_ids:
            return 0
        result = self.db.execute(
            delete(Post)
            .where(Post.id.in_(post_ids), Post.tenant_id == tenant_id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount
