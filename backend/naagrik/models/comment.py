from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from naagrik.core.database import Base, new_id, utcnow


class Comment(Base):
    """
    Append-only text attached to an issue.

    issue_id is not a foreign key: deleting an issue leaves its
    comments in place, and a comment may point at an issue that never existed.
    """
    __tablename__ = "comments"

    id = Column(String(32), primary_key=True, default=new_id)
    text = Column(Text, nullable=False)
    created_by = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    issue_id = Column(String(32), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
