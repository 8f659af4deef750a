import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum
from naagrik.core.database import Base, new_id, utcnow


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """
    User model representing application users.

    Stores authentication credentials and the public profile shown next to
    issues and comments. Passwords are stored as hashes (never plaintext).
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    # Email is unique and indexed for fast lookups during login.
    # Matching is exact, no case folding.
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.USER)
    avatar = Column(String, nullable=True)
    description = Column(String, nullable=True)
    contact = Column(String, nullable=True)
    # Informational counters, kept up to date by the issue service
    issues_reported = Column(Integer, nullable=False, default=0)
    issues_resolved = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
