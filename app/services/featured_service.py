"""
Featured post selection.

score = like_count * LIKE_WEIGHT + view_count

The PUBLIC post with the strictly highest score is the only featured post
of its tenant. Candidates arrive most recently published first, so on a
tie the newer post wins, then the lower id.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.post import Post
from app.repositories.post_repository import PostRepository

logger = logging.getLogger(__name__)

LIKE_WEIGHT = 5


def score(post: Post) -> int:
    return post.like_count * LIKE_WEIGHT + post.view_count


class FeaturedRanker:
    """Recomputes the featured post of a tenant"""

    def __init__(self, db: Session):
        self.db = db
        self.post_repo = PostRepository(db)

    def recompute_featured(self, tenant_id: str) -> Post | None:
        """
        Mark the top-scoring PUBLIC post as featured and clear every other.

        Idempotent: running it twice with no counter changes leaves the
        same single post featured.

        Args:
            tenant_id: Tenant ID

        Returns:
            The featured post, or None if the tenant has no PUBLIC posts
        """
        candidates = self.post_repo.get_public_for_ranking(tenant_id)
        if not candidates:
            self.db.rollback()
            return None

        top = candidates[0]
        top_score = score(top)
        for post in candidates[1:]:
            post_score = score(post)
            if post_score > top_score:
                top, top_score = post, post_score

        cleared = self.post_repo.clear_featured_except(tenant_id, top.id)
        top.featured = True
        self.db.commit()
        self.db.refresh(top)

        logger.debug(
            "Featured post for tenant %s is %s (score %d, %d cleared)",
            tenant_id,
            top.id,
            top_score,
            cleared,
        )
        return top


def refresh_featured_best_effort(db: Session, tenant_id: str) -> None:
    """
    Recompute the featured post, logging instead of raising on database errors.

    Used after writes whose own outcome must not depend on ranking.
    """
    try:
        FeaturedRanker(db).recompute_featured(tenant_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Featured recomputation failed for tenant %s: %s", tenant_id, e)
