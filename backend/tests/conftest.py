import os
import tempfile
from pathlib import Path

# Point the application at a throwaway SQLite file before `achievo` is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="achievo-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'app.db'}"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["JWT_SECRET"] = "tests-only-signing-key-0123456789abcdef"

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from achievo.database import create_db_and_tables
from achievo.models import Role
from achievo.schemas import UserCreate
from achievo.services import UserService


class FakeHasher:
    """Reversible stand-in for the password hasher so tests stay fast."""

    def hash(self, password: str) -> str:
        return f"hashed:{password}"

    def verify(self, password: str, hashed: str) -> bool:
        return hashed == f"hashed:{password}"


@pytest.fixture
def session():
    """A session on a fresh in-memory database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture
def user_service(session):
    return UserService(session, hasher=FakeHasher())


@pytest.fixture
def make_dto():
    def _make(username, birth_date="1990-05-01", password="secret", **extra):
        return UserCreate(username=username, password=password, birth_date=birth_date, **extra)
    return _make


@pytest.fixture
def add_user(user_service, make_dto):
    """Create a user through the service and return the response DTO."""
    def _add(username, role=Role.USER, **extra):
        return user_service.add_user(make_dto(username, role=role, **extra))
    return _add
