from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from steelerp.auth import issue_token
from steelerp.db import Base
from steelerp.main import app, get_db
from steelerp.models import Employee, Project, User


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
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


def _add(db, *rows):
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows[0] if len(rows) == 1 else rows


@pytest.fixture()
def save(db):
    def _save(*rows):
        return _add(db, *rows)

    return _save


@pytest.fixture()
def auth():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token(user.id)}"}

    return _headers


@pytest.fixture()
def admin(db) -> User:
    return _add(db, User(full_name="Asha Admin", email="admin@steel.test", role="admin"))


@pytest.fixture()
def customer(db) -> User:
    return _add(db, User(full_name="Ravi Client", email="ravi@client.test", role="client"))


@pytest.fixture()
def project(db, customer) -> Project:
    return _add(
        db,
        Project(
            title="Warehouse Frame",
            status="in_progress",
            client_id=customer.id,
            estimated_cost=50000,
            created_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
        ),
    )


@pytest.fixture()
def welder(db) -> Employee:
    return _add(
        db,
        Employee(
            employee_id="EMP-001",
            name="Kiran Welder",
            role="welder",
            skill_type="skilled",
            employment_type="permanent",
            basic_salary=2600,
            overtime_rate=5,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        ),
    )
