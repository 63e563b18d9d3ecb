import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SITETASK_UPLOAD_DIR", tempfile.mkdtemp(prefix="sitetask-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app import app
from core.access import CallerContext
from core.security import create_access_token, get_password_hash
from data.database import get_session, register_models
from models.users import Role, User
from services.notifications import ConnectionHub, get_notification_sink

PASSWORD = "secret123"
_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def engine():
    register_models()
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def client(engine, hub):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_notification_sink] = lambda: hub
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(engine):
    def _make(name: str, role: Role, email: str = None) -> User:
        email = email or f"{name.lower().replace(' ', '.')}@example.com"
        with Session(engine, expire_on_commit=False) as s:
            u = User(name=name, email=email, role=role, password_hash=_HASH)
            s.add(u)
            s.commit()
            s.refresh(u)
            return u
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("Ada Admin", Role.admin)


@pytest.fixture
def supervisor(make_user):
    return make_user("Sam Supervisor", Role.supervisor)


@pytest.fixture
def worker(make_user):
    return make_user("Wes Worker", Role.worker)


@pytest.fixture
def worker2(make_user):
    return make_user("Wren Worker", Role.worker)


def auth(user: User) -> dict:
    token = create_access_token(subject=user.id, extra_claims={"role": user.role.value, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def caller_of(user: User) -> CallerContext:
    return CallerContext.from_user(user)


@pytest.fixture
def new_task(client, admin):
    def _new(**fields):
        body = {"taskName": "Task", "date": "2025-11-01"}
        body.update(fields)
        res = client.post("/api/tasks", json=body, headers=auth(admin))
        assert res.status_code == 201, res.text
        return res.json()["data"]
    return _new
