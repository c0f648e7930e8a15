# tests/conftest.py

import os

# Configure an isolated in-memory database before the app modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ALGORITHM"] = "HS256"

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from taskrelay.database import Base, SessionLocal, engine, init_db
from taskrelay.models import User, UserRole
from taskrelay.schemas.user import CurrentUser
from taskrelay.services.notification_router import NotificationRouter
from taskrelay.services.session_registry import SessionRegistry
from taskrelay.services.task_service import TaskStateMachine
from taskrelay.services.task_store import TaskStore

from .fakes import RecordingRouter

USERS = [
    ("m1", "Maya Manager", "maya@example.com", UserRole.MANAGER),
    ("m2", "Mark Manager", "mark@example.com", UserRole.MANAGER),
    ("e1", "Evan Employee", "evan@example.com", UserRole.EMPLOYEE),
    ("e2", "Erin Employee", "erin@example.com", UserRole.EMPLOYEE),
]


@pytest.fixture()
def db():
    init_db()
    session = SessionLocal()
    for user_id, name, email, role in USERS:
        session.add(User(id=user_id, name=name, email=email, role=role))
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def manager() -> CurrentUser:
    return CurrentUser(user_id="m1", role=UserRole.MANAGER)


@pytest.fixture()
def other_manager() -> CurrentUser:
    return CurrentUser(user_id="m2", role=UserRole.MANAGER)


@pytest.fixture()
def employee() -> CurrentUser:
    return CurrentUser(user_id="e1", role=UserRole.EMPLOYEE)


@pytest.fixture()
def other_employee() -> CurrentUser:
    return CurrentUser(user_id="e2", role=UserRole.EMPLOYEE)


@pytest.fixture()
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture()
def machine(db, router) -> TaskStateMachine:
    """State machine over the real SQLite store with a recording router"""
    return TaskStateMachine(TaskStore(db), router)


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def notification_router(registry) -> NotificationRouter:
    return NotificationRouter(registry)


@pytest.fixture()
def client(db):
    from main import app

    # Fresh realtime state per test
    app.state.session_registry = SessionRegistry()
    app.state.notification_router = NotificationRouter(app.state.session_registry)

    with TestClient(app) as test_client:
        yield test_client


def make_token(user_id: str, role: str) -> str:
    return jwt.encode({"id": user_id, "role": role}, os.environ["SECRET_KEY"], algorithm=os.environ["ALGORITHM"])


def auth_headers(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}
