"""Pytest configuration and fixtures."""

import os

# never touch a real database from the test run
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401  registers tables on Base.metadata
from app.repositories import LoanRepository, StaffRepository
from app.utils.database import Base, get_db, make_engine
from main import app as fastapi_app


@pytest.fixture
def engine(tmp_path):
    """A fresh SQLite file per test so separate sessions really are separate connections."""
    eng = make_engine(f"sqlite:///{tmp_path / 'loans.db'}", echo=False)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def staff(session):
    return StaffRepository(session).create_staff(
        name="Alice Ng",
        email="alice@example.com",
        department="Finance",
        employee_id="EMP-001",
    )


@pytest.fixture
def loan(session, staff):
    """1200 over 12 months, ACTIVE, no payments."""
    return LoanRepository(session).create_loan(staff.id, 1200, 12)
