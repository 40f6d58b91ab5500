from datetime import datetime
from pydantic import BaseModel, Field

from app.models.role import PostStatus

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"


class PostCreate(BaseModel):
    """Schema for creating a post"""

    title: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    excerpt: str | None = Field(None, max_length=500)
    content: str = ""
    cover_image: str | None = Field(None, max_length=500)
    status: PostStatus = PostStatus.PUBLIC


class AuthorResponse(BaseModel):
    """Public author profile from the auth service"""

    id: str
    name: str
    avatar: str | None = None
    bio: str | None = None


class PostResponse(BaseModel):
    """Schema for post response"""

    id: str
    tenant_id: str
    author_id: str
    title: str
    slug: str
    excerpt: str | None
    content: str
    cover_image: str | None
    status: PostStatus
    view_count: int
    like_count: int
    featured: bool
    published_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class PostDetailResponse(PostResponse):
    """Post with author and the caller's engagement"""

    author: AuthorResponse | None = None
    is_new_view: bool = False


class PostListResponse(BaseModel):
    """Paginated list of posts"""

    posts: list[PostResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class BulkDeleteRequest(BaseModel):
    """Post IDs to delete"""

    ids: list[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int


class LikeResponse(BaseModel):
    """Like state after a toggle or lookup"""

    liked: bool
    like_count: int
