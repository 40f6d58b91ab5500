import logging
import math
import re
import uuid

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.models.post import Post
from app.models.principal import Principal
from app.models.role import PostStatus
from app.repositories.engagement_repository import EngagementRepository
from app.repositories.post_repository import PostRepository
from app.schemas.post_schemas import PostCreate

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lower-case, hyphen-separated slug; falls back to a random token"""
    slug = _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
    return slug[:200] or uuid.uuid4().hex[:12]


def visible_statuses(principal: Principal | None) -> list[PostStatus]:
    """Admins see every status, everyone else PUBLIC only"""
    if principal is not None and principal.is_admin():
        return list(PostStatus)
    return [PostStatus.PUBLIC]


class PostService:
    """Service for post business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PostRepository(db)
        self.engagement_repo = EngagementRepository(db)

    def create_post(self, tenant_id: str, data: PostCreate, author: Principal) -> Post:
        """
        Create a post authored by an admin.

        Raises:
            ValidationError: If the slug is already used in the tenant
        """
        slug = data.slug or slugify(data.title)
        if self.repo.get_by_slug(slug, tenant_id):
            if data.slug:
                raise ValidationError("Slug already exists")
            slug = f"{slug}-{uuid.uuid4().hex[:6]}"

        post = Post(
            tenant_id=tenant_id,
            author_id=author.user_id,
            title=data.title,
            slug=slug,
            excerpt=data.excerpt,
            content=data.content,
            cover_image=data.cover_image,
            status=data.status,
        )
        return self.repo.create(post)

    def list_posts(
        self,
        tenant_id: str,
        principal: Principal | None,
        page: int = 1,
        limit: int = 10,
        featured_only: bool = False,
    ) -> dict:
        """
        List posts visible to the caller.

        Returns:
            Dict with posts, total, page, limit, total_pages
        """
        posts, total = self.repo.list_posts(
            tenant_id,
            visible_statuses(principal),
            featured_only=featured_only,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return {
            "posts": posts,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    def get_featured(self, tenant_id: str) -> Post:
        """
        Raises:
            NotFoundError: If the tenant has no featured post
        """
        posts, _ = self.repo.list_posts(tenant_id, [PostStatus.PUBLIC], featured_only=True, limit=1)
        if not posts:
            raise NotFoundError("No featured post")
        return posts[0]

    def get_visible_by_slug(self, tenant_id: str, slug: str, principal: Principal | None) -> Post:
        """
        Raises:
            NotFoundError: If the post is absent or hidden from the caller
        """
        post = self.repo.get_by_slug(slug, tenant_id)
        if not post or post.status not in visible_statuses(principal):
            raise NotFoundError("Post not found")
        return post

    def get_visible_by_id(self, tenant_id: str, post_id: str, principal: Principal | None) -> Post:
        """
        Raises:
            NotFoundError: If the post is absent or hidden from the caller
        """
        post = self.repo.get_by_id(post_id, tenant_id)
        if not post or post.status not in visible_statuses(principal):
            raise NotFoundError("Post not found")
        return post

    def bulk_delete(self, tenant_id: str, post_ids: list[str]) -> int:
        """
        Delete posts of the tenant together with their view and like records.

        IDs from other tenants are ignored.

        Returns:
            Number of deleted posts
        """
        self.engagement_repo.delete_for_posts(post_ids, tenant_id)
        deleted = self.repo.delete_many(post_ids, tenant_id)
        logger.info("Deleted %d posts in tenant %s", deleted, tenant_id)
        return deleted
