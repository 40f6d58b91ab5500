"""Per-identity engagement records backing post view and like counters."""

from datetime import datetime
from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDPrimaryKeyMixin, utcnow


class PostView(Base, UUIDPrimaryKeyMixin):
    """
    Last counted view of a post by one identity.

    identity is "user:<id>" for authenticated callers or the salted hash of
    the client IP. seen_at is refreshed whenever a stale record is counted
    again, so the row holds the time of the last *counted* view.
    """

    __tablename__ = "post_views"

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    identity: Mapped[str] = mapped_column(String(128), nullable=False)
    seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "post_id", "identity", name="uq_post_views_identity"),
    )


class PostLike(Base, UUIDPrimaryKeyMixin):
    """Live like of a post by one identity. Deleted on unlike."""

    __tablename__ = "post_likes"

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    identity: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "post_id", "identity", name="uq_post_likes_identity"),
    )
