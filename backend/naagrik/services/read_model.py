"""
Read-model assembly.

Turns stored rows into the client-facing shapes: the author reference on an
issue or comment is expanded into an embedded summary and every id is
rendered as an opaque string. Assembly never touches the database and
returns the same output for the same input.
"""

import logging
from typing import Iterable, Optional
from naagrik.models.comment import Comment
from naagrik.models.issue import Issue
from naagrik.models.user import User
from naagrik.schemas import (
    AuthorSummary,
    CommentAuthorSummary,
    CommentRead,
    IssueRead,
    Location,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Shown in place of an author whose user row is gone
TOMBSTONE_USERNAME = "[deleted]"


def author_summary(user: Optional[User], user_ref: str) -> AuthorSummary:
    if user is None:
        logger.warning(f"Author {user_ref} not found, using tombstone")
        return AuthorSummary(id=str(user_ref), username=TOMBSTONE_USERNAME)
    return AuthorSummary(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        avatar=user.avatar,
    )


def comment_author_summary(user: Optional[User], user_ref: str) -> CommentAuthorSummary:
    if user is None:
        logger.warning(f"Comment author {user_ref} not found, using tombstone")
        return CommentAuthorSummary(id=str(user_ref), username=TOMBSTONE_USERNAME)
    return CommentAuthorSummary(id=str(user.id), username=user.username, avatar=user.avatar)


def assemble_comment(comment: Comment, author: Optional[User]) -> CommentRead:
    return CommentRead(
        id=str(comment.id),
        text=comment.text,
        issue_id=str(comment.issue_id),
        created_at=comment.created_at,
        user=comment_author_summary(author, comment.created_by),
    )


def assemble_issue(
    issue: Issue,
    author: Optional[User],
    comments: Optional[Iterable[tuple[Comment, Optional[User]]]] = None,
) -> IssueRead:
    """
    Build the issue read-model.

    comments is a sequence of (comment, author) pairs already in display
    order; when omitted the payload carries no comment list at all.
    """
    assembled_comments = None
    if comments is not None:
        assembled_comments = [assemble_comment(c, a) for c, a in comments]

    return IssueRead(
        id=str(issue.id),
        title=issue.title,
        description=issue.description,
        category=issue.category,
        photo=issue.photo,
        location=Location(lat=issue.latitude, lng=issue.longitude),
        status=issue.status,
        upvotes=issue.upvotes,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
        user=author_summary(author, issue.created_by),
        comments=assembled_comments,
    )


def assemble_profile(user: User) -> UserProfile:
    return UserProfile(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        avatar=user.avatar,
        description=user.description,
        contact=user.contact,
        issues_reported=user.issues_reported,
        issues_resolved=user.issues_resolved,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
