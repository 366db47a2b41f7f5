# tests/conftest.py
"""
Pytest configuration.

Tests run against a private in-memory SQLite database. Settings are
pointed at it through the environment BEFORE any application import so the
module-level engine never touches a real database file.
"""

import os

# CRITICAL: Set test configuration BEFORE any app imports!
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-only-0123456789"

from datetime import timedelta

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from blverse.auth import create_access_token
from blverse.database import Base, get_db
from blverse.main import app
import blverse.models  # noqa: F401  register mappers
from blverse.models.engagement import CommunityPost, PostComment, Story, Work, WorkComment
from blverse.models.user import User
from blverse.services.media_storage import LocalMediaStore
from blverse.services.messaging import ConnectionDirectory

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


def _make_user(db: Session, username: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        display_name=username.capitalize(),
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def alice(db: Session) -> User:
    return _make_user(db, "alice")


@pytest.fixture
def bob(db: Session) -> User:
    return _make_user(db, "bob")


@pytest.fixture
def carol(db: Session) -> User:
    return _make_user(db, "carol")


def token_for(user: User, expires: timedelta | None = None) -> str:
    return create_access_token({"sub": user.id}, expires_delta=expires)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def alice_headers(alice: User) -> dict:
    return auth_headers(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict:
    return auth_headers(bob)


@pytest.fixture
def carol_headers(carol: User) -> dict:
    return auth_headers(carol)


@pytest.fixture
def directory() -> ConnectionDirectory:
    return ConnectionDirectory(stream_queue_size=10)


@pytest.fixture
def media_store(tmp_path) -> LocalMediaStore:
    return LocalMediaStore(tmp_path / "media", "/api/v1/messages/media")


@pytest.fixture
def client(db: Session, directory: ConnectionDirectory, media_store: LocalMediaStore):
    """Test client sharing the test session, directory and media store."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        # Lifespan has run; replace its process state with the test doubles
        app.state.session_factory = TestSessionLocal
        app.state.connection_directory = directory
        app.state.media_store = media_store
        yield test_client

    app.dependency_overrides.clear()


# Engagement targets


@pytest.fixture
def post(db: Session, alice: User) -> CommunityPost:
    obj = CommunityPost(user_id=alice.id, content="First post")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def post_comment(db: Session, post: CommunityPost, alice: User) -> PostComment:
    obj = PostComment(post_id=post.id, user_id=alice.id, content="Nice")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def story(db: Session, alice: User) -> Story:
    obj = Story(user_id=alice.id, title="A story")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def work(db: Session, alice: User) -> Work:
    obj = Work(author_id=alice.id, title="A work")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def work_comment(db: Session, work: Work, alice: User) -> WorkComment:
    obj = WorkComment(work_id=work.id, user_id=alice.id, chapter_number=1, content="Great chapter")
    db.add(obj)
    db.commit()
    return obj
