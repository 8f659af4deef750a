from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from naagrik.api.dependencies import get_admin_principal, get_current_principal, get_optional_principal
from naagrik.core.config import settings
from naagrik.core.database import get_db
from naagrik.core.security import Principal, require_authenticated
from naagrik.schemas import (
    CleanupResponse,
    CommentCreate,
    CommentRead,
    IssueCreate,
    IssueRead,
    MessageResponse,
    StatusUpdate,
)
from naagrik.services.comment_cleanup_service import comment_cleanup_service
from naagrik.services.issue_service import issue_service

router = APIRouter(prefix="/issues", tags=["issues"])

# Handlers are sync so FastAPI runs each request in its threadpool


@router.get("", response_model=List[IssueRead])
def list_issues(db: Session = Depends(get_db)):
    """List every issue with its author and comments, newest first"""
    return issue_service.list_issues(db)


@router.post("", response_model=IssueRead, status_code=status.HTTP_201_CREATED)
def create_issue(
    issue: IssueCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Report a new issue"""
    return issue_service.create_issue(db, principal, issue)


@router.post("/cleanup-orphaned-comments", response_model=CleanupResponse)
def cleanup_orphaned_comments(
    principal: Principal = Depends(get_admin_principal),
    db: Session = Depends(get_db)
):
    """
    Delete comments whose issue no longer exists.

    Deleting an issue leaves its comments behind; this removes them on demand.
    The same sweep can also run on a schedule (ORPHAN_SWEEP_ENABLED).
    """
    deleted = comment_cleanup_service.sweep_orphaned_comments(db)
    if not deleted:
        return CleanupResponse(message="No orphaned comments found", deleted_count=0)
    return CleanupResponse(message=f"Cleaned up {deleted} orphaned comment(s)", deleted_count=deleted)


@router.get("/{issue_id}", response_model=IssueRead)
def get_issue(issue_id: str, db: Session = Depends(get_db)):
    """Get a single issue"""
    return issue_service.get_issue(db, issue_id)


@router.post("/{issue_id}/upvote", response_model=IssueRead)
def upvote_issue(
    issue_id: str,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: Session = Depends(get_db)
):
    """Upvote an issue (public unless UPVOTE_REQUIRES_AUTH is set)"""
    if settings.UPVOTE_REQUIRES_AUTH:
        require_authenticated(principal)
    return issue_service.upvote(db, issue_id)


@router.get("/{issue_id}/comments", response_model=List[CommentRead])
def list_comments(issue_id: str, db: Session = Depends(get_db)):
    """List the comments on an issue, newest first"""
    return issue_service.list_comments(db, issue_id)


@router.post("/{issue_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def add_comment(
    issue_id: str,
    comment: CommentCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Comment on an issue"""
    return issue_service.add_comment(db, principal, issue_id, comment.text)


@router.put("/{issue_id}/status", response_model=IssueRead)
def change_status(
    issue_id: str,
    update: StatusUpdate,
    principal: Principal = Depends(get_admin_principal),
    db: Session = Depends(get_db)
):
    """Update issue status (admin only)"""
    return issue_service.change_status(db, principal, issue_id, update.status)


@router.delete("/{issue_id}", response_model=MessageResponse)
def delete_issue(
    issue_id: str,
    principal: Principal = Depends(get_admin_principal),
    db: Session = Depends(get_db)
):
    """Delete an issue (admin only). Its comments are kept."""
    issue_service.delete_issue(db, principal, issue_id)
    return MessageResponse(message="Issue deleted")


# Older clients delete through the status resource
router.add_api_route(
    "/{issue_id}/status",
    delete_issue,
    methods=["DELETE"],
    response_model=MessageResponse,
    include_in_schema=False,
)
