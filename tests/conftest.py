# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from srm_collab.api.v1.dependencies import get_backend, get_session_registry
from srm_collab.backend.sql import SqlBackend
from srm_collab.core.security import create_access_token
from srm_collab.db.session import Base
from srm_collab.db.time import utcnow
from srm_collab.main import app as fastapi_app
from srm_collab.models import Match, Message, Poll, Post, Profile
from srm_collab.services.session import ClientSession, SessionRegistry

TEST_DB_URL = "sqlite://"

ALICE = "00000000-0000-4000-8000-00000000000a"
BOB = "00000000-0000-4000-8000-00000000000b"
CAROL = "00000000-0000-4000-8000-00000000000c"
DAVE = "00000000-0000-4000-8000-00000000000d"
ERIN = "00000000-0000-4000-8000-00000000000e"
STRANGER = "00000000-0000-4000-8000-0000000000ff"


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def backend(engine: Engine) -> SqlBackend:
    return SqlBackend(engine, public_url="http://test/storage")


@pytest.fixture()
def registry(backend: SqlBackend) -> SessionRegistry:
    return SessionRegistry(backend)


@pytest.fixture()
def alice_session(backend: SqlBackend) -> ClientSession:
    """Signed-in session for the primary test user."""
    return ClientSession(user_id=ALICE, backend=backend)


@pytest.fixture()
def bob_session(backend: SqlBackend) -> ClientSession:
    return ClientSession(user_id=BOB, backend=backend)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_backend_dependencies(
    app: FastAPI,
    backend: SqlBackend,
    registry: SessionRegistry,
) -> Iterator[None]:
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_session_registry] = lambda: registry
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_backend, None)
        app.dependency_overrides.pop(get_session_registry, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def auth_token() -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(ALICE)


@pytest.fixture()
def other_auth_token() -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(BOB)


@pytest.fixture()
def profiles(db_session: Session) -> list[Profile]:
    """Five students; two of them (Alice, Erin) know Python and study CSE."""
    rows = [
        Profile(
            user_id=ALICE,
            name="Alice",
            course="CSE",
            skills=["Python", "React"],
            interests=["Technology"],
        ),
        Profile(user_id=BOB, name="Bob", course="CSE", skills=["python"], interests=["Music"]),
        Profile(user_id=CAROL, name="Carol", course="ECE", skills=["Python"], interests=[]),
        Profile(user_id=DAVE, name="Dave", course="CSE", skills=["Java"], interests=["Sports"]),
        Profile(
            user_id=ERIN,
            name="Erin",
            course="CSE",
            skills=["Python", "Machine Learning"],
            interests=["Music"],
            avatar_url="http://test/storage/avatars/erin.png",
        ),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


def add_post(
    db_session: Session,
    user_id: str,
    content: str,
    *,
    likes: int = 0,
    age: timedelta = timedelta(0),
    now: datetime | None = None,
) -> Post:
    post = Post(
        user_id=user_id,
        content=content,
        likes=likes,
        created_at=(now or utcnow()) - age,
    )
    db_session.add(post)
    db_session.commit()
    return post


@pytest.fixture()
def test_post(db_session: Session, profiles: list[Profile]) -> Post:
    """Create a baseline post by Bob."""
    return add_post(db_session, BOB, "Looking for a React teammate", likes=4)


@pytest.fixture()
def test_poll(db_session: Session, profiles: list[Profile]) -> Poll:
    poll = Poll(user_id=CAROL, question="Best language?", options=["A", "B"], votes={})
    db_session.add(poll)
    db_session.commit()
    return poll


@pytest.fixture()
def test_match(db_session: Session, profiles: list[Profile]) -> Match:
    """Alice swiped right on Erin."""
    match = Match(user_id=ALICE, matched_user_id=ERIN)
    db_session.add(match)
    db_session.commit()
    return match


@pytest.fixture()
def test_message(db_session: Session, test_match: Match) -> Message:
    message = Message(
        match_id=test_match.id,
        sender_id=ERIN,
        receiver_id=ALICE,
        content="Hi Alice!",
        created_at=utcnow() - timedelta(minutes=5),
    )
    db_session.add(message)
    db_session.commit()
    return message
