import os

# Configure the app for tests before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.config.database import get_db
from app.core.auth.service import AuthService
from app.shared.database.models import Base, Unit, UserRole, ManagerUnit, SALES


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_unit(db_session):
    def _make_unit(name, code=None, parent=None):
        unit = Unit(
            name=name,
            code=code or name[:3].upper(),
            parent_id=parent.id if parent is not None else None
        )
        db_session.add(unit)
        db_session.commit()
        db_session.refresh(unit)
        return unit
    return _make_unit


@pytest.fixture
def make_user(db_session):
    def _make_user(email, role=SALES, unit=None, full_name=None, password="secret123", managed_units=()):
        user = AuthService.create_identity(
            db_session,
            email=email,
            password=password,
            full_name=full_name or email.split("@")[0]
        )
        if unit is not None:
            user.profile.unit_id = unit.id
        if role != SALES:
            db_session.query(UserRole).filter(UserRole.user_id == user.id).update({"role": role})
        for managed in managed_units:
            db_session.add(ManagerUnit(user_id=user.id, unit_id=managed.id))
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = AuthService.create_access_token({
            "user_id": user.id,
            "email": user.email,
            "role": user.role
        })
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers
