"""
Shared fixtures: in-memory SQLite database and API client.
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clubfee.db.base import Base
from clubfee.db.session import get_db, enable_sqlite_foreign_keys
from clubfee.main import app
from clubfee.models import Member, Meeting


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def meeting(db):
    meeting = Meeting(date=date(2024, 3, 9), location="강남 볼링장")
    db.add(meeting)
    db.commit()
    db.refresh(meeting)
    return meeting


@pytest.fixture
def members(db):
    names = ["김철수", "이영희", "박민수"]
    rows = [Member(name=name) for name in names]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows
