from __future__ import annotations

import itertools
import os
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import create_access_token, hash_password
from sitestock.app.db.base import Base
from sitestock.app.db.models import models_v1  # noqa: F401  (import for side effects)
from sitestock.app.db.models.core_types import ProjectStatus, Role
from sitestock.app.db.models.models_v1 import User
from sitestock.app.schemas.auth import Actor
from sitestock.services.inventory import create_item
from sitestock.services.ledger import add_material
from sitestock.services.procurement import create_vendor
from sitestock.services.projects import create_project

TEST_PASSWORD = "test-password"

# Postgres possible : TEST_DATABASE_URL=postgresql+psycopg://...
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


def _make_engine():
    if TEST_DATABASE_URL:
        return create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
    return create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(scope="function")
def engine():
    """Schéma neuf par test : aucune pollution entre tests."""
    eng = _make_engine()
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------- Utilisateurs / acteurs ----------
@pytest.fixture
def users(db_session) -> dict[Role, User]:
    rows = {
        Role.ceo_admin: User(name="Carla CEO", email="ceo@test.local", role=Role.ceo_admin),
        Role.warehouse_admin: User(name="Walt Warehouse", email="warehouse@test.local", role=Role.warehouse_admin),
        Role.onsite_team: User(name="Olga Onsite", email="onsite@test.local", role=Role.onsite_team),
    }
    pw = hash_password(TEST_PASSWORD)
    for u in rows.values():
        u.password_hash = pw
        u.active = True
        db_session.add(u)
    db_session.commit()
    return rows


def _actor(user: User) -> Actor:
    return Actor(user_id=user.id, name=user.name, role=user.role)


@pytest.fixture
def ceo(users) -> Actor:
    return _actor(users[Role.ceo_admin])


@pytest.fixture
def warehouse(users) -> Actor:
    return _actor(users[Role.warehouse_admin])


@pytest.fixture
def onsite(users) -> Actor:
    return _actor(users[Role.onsite_team])


# ---------- Factories ----------
@pytest.fixture
def make_item(db_session):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "product_name": f"TEST-PROD-{n}",
            "sku": f"TEST-SKU-{n}",
            "in_stock": 0,
            "unit_cost": Decimal("10.00"),
        }
        fields.update(overrides)
        item = create_item(db_session, **fields)
        db_session.commit()
        return item

    return _make


@pytest.fixture
def make_project(db_session):
    counter = itertools.count(1)

    def _make(status: ProjectStatus = ProjectStatus.active, **overrides):
        n = next(counter)
        fields = {"name": f"TEST-PROJECT-{n}", "location": "Lot 12", "status": status}
        fields.update(overrides)
        p = create_project(db_session, **fields)
        db_session.commit()
        return p

    return _make


@pytest.fixture
def make_material(db_session):
    def _make(project, item, *, required: int, claimed: int = 0, phase: str | None = None):
        m = add_material(
            db_session,
            project_id=project.id,
            product_id=item.id,
            required_quantity=required,
            phase=phase,
        )
        m.claimed_quantity = claimed
        db_session.commit()
        return m

    return _make


@pytest.fixture
def vendor(db_session):
    v = create_vendor(db_session, name="TEST-VENDOR", country="USA", lead_time_days=7)
    db_session.commit()
    return v


# ---------- API ----------
@pytest.fixture
def client(session_factory):
    from sitestock.app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(users) -> dict[Role, dict[str, str]]:
    return {role: {"Authorization": f"Bearer {create_access_token(u)}"} for role, u in users.items()}
