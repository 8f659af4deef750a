import logging
from typing import List
from sqlalchemy import delete, exists, select
from sqlalchemy.orm import Session
from naagrik.core.errors import storage_guard
from naagrik.models.comment import Comment
from naagrik.models.issue import Issue

logger = logging.getLogger(__name__)


def _issue_exists():
    return exists(select(Issue.id).where(Issue.id == Comment.issue_id))


class CommentCleanupService:
    """Service for finding and removing comments whose issue is gone"""

    @staticmethod
    def get_orphaned_comments(db: Session) -> List[Comment]:
        """
        Comments whose issue_id does not resolve to a stored issue.

        Deleting an issue never touches its comments, so these accumulate
        until a sweep runs.
        """
        return db.query(Comment).filter(~_issue_exists()).all()

    @staticmethod
    def sweep_orphaned_comments(db: Session) -> int:
        """Delete every orphaned comment in one statement and return how many were removed"""
        with storage_guard(db, "sweep orphaned comments"):
            result = db.execute(
                delete(Comment)
                .where(~_issue_exists())
                .execution_options(synchronize_session=False)
            )
            db.commit()
            deleted = result.rowcount
            if deleted:
                logger.info(f"Deleted {deleted} orphaned comments")
            return deleted


comment_cleanup_service = CommentCleanupService()
