from datetime import datetime
from sqlalchemy import String, Integer, Boolean, Text, ForeignKey, Enum, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from app.models.role import PostStatus


class Post(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Blog post (content item).

    view_count and like_count always equal the number of counted view and
    live like records; they are only changed by the engagement service in
    the same transaction as the records. At most one PUBLIC post per tenant
    has featured=True, maintained by the featured ranker.
    """

    __tablename__ = "posts"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    excerpt: Mapped[str | None] = mapped_column(String(500), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[PostStatus] = mapped_column(
        Enum(PostStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=PostStatus.PUBLIC,
    )
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_posts_tenant_slug"),
        Index("ix_posts_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, slug='{self.slug}', featured={self.featured})>"
