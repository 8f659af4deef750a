import os
import tempfile

# Settings are read at import time, so point uploads somewhere disposable first
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="naagrik-uploads-"))

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from naagrik.core.database import Base, get_db
from naagrik.core.security import Principal, create_principal_token, get_password_hash
from naagrik.main import app
from naagrik.models.comment import Comment
from naagrik.models.issue import Issue, IssueStatus
from naagrik.models.user import Role, User

DEFAULT_PASSWORD = "secret123"
# Hashing once keeps the fixtures fast; bcrypt is slow on purpose
DEFAULT_PASSWORD_HASH = get_password_hash(DEFAULT_PASSWORD)

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    # File-backed so that separate connections (threads) see the same data
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email="a@x.com", username="alice", role=Role.USER):
        user = User(email=email, username=username, hashed_password=DEFAULT_PASSWORD_HASH, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(email="b@x.com", username="bob")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@x.com", username="admin", role=Role.ADMIN)


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, email=user.email, role=user.role)


@pytest.fixture
def principal():
    return principal_for


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        token = create_principal_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def make_issue(db):
    """Insert an issue directly, with an explicit creation time when ordering matters"""
    def _make_issue(author, title="Pothole on Main St", created_at=None, status=IssueStatus.OPEN, upvotes=0):
        issue = Issue(
            title=title,
            description="Deep pothole",
            category="Road",
            latitude=12.9,
            longitude=77.6,
            status=status,
            upvotes=upvotes,
            created_by=author.id if hasattr(author, "id") else author,
            created_at=created_at or BASE_TIME,
            updated_at=created_at or BASE_TIME,
        )
        db.add(issue)
        db.commit()
        db.refresh(issue)
        return issue
    return _make_issue


@pytest.fixture
def make_comment(db):
    def _make_comment(author, issue_id, text="Still there", created_at=None):
        comment = Comment(
            text=text,
            issue_id=issue_id,
            created_by=author.id if hasattr(author, "id") else author,
            created_at=created_at or BASE_TIME,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment
    return _make_comment


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture
def minutes_after_base():
    return at
