from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.models.engagement import PostLike, PostView


class EngagementRepository:
    """
    Data access for view and like records.

    Methods never commit; the engagement service commits records and
    counters together.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_view(self, tenant_id: str, post_id: str, identity: str) -> PostView | None:
        return (
            self.db.query(PostView)
            .filter(
                PostView.tenant_id == tenant_id,
                PostView.post_id == post_id,
                PostView.identity == identity,
            )
            .first()
        )

    def add_view(self, view: PostView) -> None:
        self.db.add(view)

    def get_like(self, tenant_id: str, post_id: str, identity: str) -> PostLike | None:
        return (
            self.db.query(PostLike)
            .filter(
                PostLike.tenant_id == tenant_id,
                PostLike.post_id == post_id,
                PostLike.identity == identity,
            )
            .first()
        )

    def add_like(self, like: PostLike) -> None:
        self.db.add(like)

    def delete_like(self, like_id: str) -> bool:
        """
        Delete a like record by ID.

        Returns:
            True if a row was deleted (False if a concurrent unlike won)
        """
        result = self.db.execute(
            delete(PostLike)
            .where(PostLike.id == like_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete_for_posts(self, post_ids: list[str], tenant_id: str) -> None:
        """Remove view and like records of posts being deleted"""
        if not post_ids:
            return
        for model in (PostView, PostLike):
            self.db.execute(
                delete(model)
                .where(model.post_id.in_(post_ids), model.tenant_id == tenant_id)
                .execution_options(synchronize_session=False)
            )
