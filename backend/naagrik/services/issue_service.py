import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy import update
from sqlalchemy.orm import Session
from naagrik.core.errors import IntegrityError, NotFound, Unauthenticated, ValidationError, storage_guard
from naagrik.core.security import Principal, require_admin, require_authenticated
from naagrik.models.comment import Comment
from naagrik.models.issue import ALLOWED_TRANSITIONS, Issue, IssueStatus
from naagrik.models.user import User
from naagrik.schemas import CommentRead, IssueCreate, IssueRead
from naagrik.services.read_model import assemble_comment, assemble_issue

logger = logging.getLogger(__name__)

ISSUE_NOT_FOUND_MESSAGE = "Issue not found"

CommentRow = Tuple[Comment, Optional[User]]


def _has_text(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(value.strip())


class IssueService:
    """
    Issue lifecycle and engagement operations.

    Each method commits at most one issue or comment mutation (plus the
    author's informational counters) and returns an assembled read-model.
    """

    # ---------- Reads ----------

    @staticmethod
    def _comments_by_issue(db: Session, issue_ids: Sequence[str]) -> Dict[str, List[CommentRow]]:
        """
        Fetch the comments of several issues, newest first within each issue.

        The per-issue lookups share no state, so they run as one set-based
        read and are grouped afterwards.
        """
        grouped: Dict[str, List[CommentRow]] = defaultdict(list)
        if not issue_ids:
            return grouped

        rows = (
            db.query(Comment, User)
            .outerjoin(User, Comment.created_by == User.id)
            .filter(Comment.issue_id.in_(issue_ids))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .all()
        )
        for comment, author in rows:
            grouped[comment.issue_id].append((comment, author))
        return grouped

    @staticmethod
    def _load_issue(db: Session, issue_id: str) -> IssueRead:
        row = (
            db.query(Issue, User)
            .outerjoin(User, Issue.created_by == User.id)
            .filter(Issue.id == issue_id)
            .first()
        )
        if row is None:
            raise NotFound(ISSUE_NOT_FOUND_MESSAGE)

        issue, author = row
        comments = IssueService._comments_by_issue(db, [issue.id])
        return assemble_issue(issue, author, comments.get(issue.id, []))

    @staticmethod
    def list_issues(db: Session) -> List[IssueRead]:
        """All issues newest first, each with its author and comments"""
        with storage_guard(db, "list issues"):
            rows = (
                db.query(Issue, User)
                .outerjoin(User, Issue.created_by == User.id)
                .order_by(Issue.created_at.desc(), Issue.id.desc())
                .all()
            )
            comments = IssueService._comments_by_issue(db, [issue.id for issue, _ in rows])
            # rows already carries the canonical order; comments are looked up into it
            return [
                assemble_issue(issue, author, comments.get(issue.id, []))
                for issue, author in rows
            ]

    @staticmethod
    def get_issue(db: Session, issue_id: str) -> IssueRead:
        with storage_guard(db, "get issue"):
            return IssueService._load_issue(db, issue_id)

    @staticmethod
    def list_comments(db: Session, issue_id: str) -> List[CommentRead]:
        """Comments attached to issue_id, newest first, whether or not the issue exists"""
        with storage_guard(db, "list comments"):
            rows = IssueService._comments_by_issue(db, [issue_id]).get(issue_id, [])
            return [assemble_comment(comment, author) for comment, author in rows]

    # ---------- Mutations ----------

    @staticmethod
    def create_issue(db: Session, principal: Optional[Principal], data: IssueCreate) -> IssueRead:
        """Report a new issue as the calling user"""
        principal = require_authenticated(principal)

        if not (_has_text(data.title) and _has_text(data.description)
                and _has_text(data.category) and data.location is not None):
            raise ValidationError("All fields are required")
        if data.photo is not None and not _has_text(data.photo):
            raise ValidationError("Photo must be a non-empty URL")

        with storage_guard(db, "create issue"):
            counted = db.execute(
                update(User)
                .where(User.id == principal.user_id)
                .values(issues_reported=User.issues_reported + 1)
                .execution_options(synchronize_session=False)
            )
            if counted.rowcount == 0:
                # Token outlived its user
                raise Unauthenticated("User not found")

            # Status and upvotes always start from their defaults
            issue = Issue(
                title=data.title.strip(),
                description=data.description.strip(),
                category=data.category.strip(),
                photo=data.photo,
                latitude=float(data.location.lat),
                longitude=float(data.location.lng),
                status=IssueStatus.OPEN,
                upvotes=0,
                created_by=principal.user_id,
            )
            db.add(issue)
            db.flush()

            new_issue_id = issue.id
            db.commit()
            logger.info(f"Issue {new_issue_id} created by user {principal.user_id}")
            try:
                return IssueService._load_issue(db, new_issue_id)
            except NotFound:
                raise IntegrityError("Failed to create issue")

    @staticmethod
    def upvote(db: Session, issue_id: str) -> IssueRead:
        """
        Add one upvote to an issue.

        The increment happens inside the UPDATE statement so concurrent
        upvotes never overwrite each other.
        """
        with storage_guard(db, "upvote issue"):
            result = db.execute(
                update(Issue)
                .where(Issue.id == issue_id)
                .values(upvotes=Issue.upvotes + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(ISSUE_NOT_FOUND_MESSAGE)
            db.commit()
            return IssueService._load_issue(db, issue_id)

    @staticmethod
    def add_comment(db: Session, principal: Optional[Principal], issue_id: str, text: Optional[str]) -> CommentRead:
        """Attach a comment to issue_id; the issue itself is not looked up"""
        principal = require_authenticated(principal)
        if not _has_text(text):
            raise ValidationError("Comment text required")

        with storage_guard(db, "add comment"):
            author = db.get(User, principal.user_id)
            if author is None:
                # Token outlived its user
                raise Unauthenticated("User not found")

            comment = Comment(text=text.strip(), issue_id=issue_id, created_by=principal.user_id)
            db.add(comment)
            db.commit()
            db.refresh(comment)
            return assemble_comment(comment, author)

    @staticmethod
    def change_status(db: Session, principal: Optional[Principal], issue_id: str, new_status: Optional[str]) -> IssueRead:
        """Set an issue's status (admin only)"""
        principal = require_admin(principal)
        try:
            target = IssueStatus(new_status)
        except ValueError:
            raise ValidationError("Invalid status")

        with storage_guard(db, "change status"):
            current = (
                db.query(Issue.status, Issue.created_by)
                .filter(Issue.id == issue_id)
                .with_for_update()
                .first()
            )
            if current is None:
                raise NotFound(ISSUE_NOT_FOUND_MESSAGE)
            if target not in ALLOWED_TRANSITIONS[current.status]:
                raise ValidationError(f"Cannot move issue from {current.status.value} to {target.value}")

            db.execute(
                update(Issue)
                .where(Issue.id == issue_id)
                .values(status=target)
                .execution_options(synchronize_session=False)
            )
            IssueService._track_resolution(db, current.created_by, current.status, target)
            db.commit()
            logger.info(
                f"Issue {issue_id} status {current.status.value} -> {target.value} by admin {principal.user_id}")
            return IssueService._load_issue(db, issue_id)

    @staticmethod
    def _track_resolution(db: Session, author_id: str, previous: IssueStatus, target: IssueStatus) -> None:
        """Keep the author's issues_resolved counter in step with RESOLVED transitions"""
        if previous is not IssueStatus.RESOLVED and target is IssueStatus.RESOLVED:
            db.execute(
                update(User)
                .where(User.id == author_id)
                .values(issues_resolved=User.issues_resolved + 1)
                .execution_options(synchronize_session=False)
            )
        elif previous is IssueStatus.RESOLVED and target is not IssueStatus.RESOLVED:
            db.execute(
                update(User)
                .where(User.id == author_id, User.issues_resolved > 0)
                .values(issues_resolved=User.issues_resolved - 1)
                .execution_options(synchronize_session=False)
            )

    @staticmethod
    def delete_issue(db: Session, principal: Optional[Principal], issue_id: str) -> None:
        """Remove an issue (admin only); its comments stay behind"""
        principal = require_admin(principal)

        with storage_guard(db, "delete issue"):
            deleted = (
                db.query(Issue)
                .filter(Issue.id == issue_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFound(ISSUE_NOT_FOUND_MESSAGE)
            db.commit()
            logger.info(f"Issue {issue_id} deleted by admin {principal.user_id}")


issue_service = IssueService()
