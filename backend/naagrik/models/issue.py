import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, Float, ForeignKey, Text, CheckConstraint
from naagrik.core.database import Base, new_id, utcnow


class IssueStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


# Statuses an admin may move an issue to from each status.
# Every transition is allowed; the table keeps the policy in one place.
ALLOWED_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    current: frozenset(IssueStatus) for current in IssueStatus
}


class Issue(Base):
    """
    A reported civic problem.

    upvotes only ever grows through the API and is changed with an SQL
    increment, never by writing back a value read earlier.
    """
    __tablename__ = "issues"
    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_issues_upvotes_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    # Free-text label chosen by the reporter
    category = Column(String, nullable=False)
    # URL returned by the image host
    photo = Column(String, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    status = Column(Enum(IssueStatus, name="issue_status"), nullable=False, default=IssueStatus.OPEN)
    upvotes = Column(Integer, nullable=False, default=0)
    created_by = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
