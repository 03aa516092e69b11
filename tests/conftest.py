import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.db.base import Base
from app.db.models import ApprovalStatus, Executive, User, Visit, Visitor, VisitStatus
from app.db.session import create_db_engine, create_session_factory, get_db
from app.main import fastapi_app


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings(monkeypatch):
    current = get_settings()
    monkeypatch.setattr(current, "LEGACY_EXECUTIVE_FALLBACK", True)
    monkeypatch.setattr(current, "STRICT_STATUS_TRANSITIONS", False)
    monkeypatch.setattr(current, "GATE_REQUIRE_APPROVAL", False)
    return current


@pytest.fixture
def make_executive(db):
    def factory(name="Amina Yusuf", department="Management", position="CEO", active=True, user_active=True):
        slug = name.lower().replace(" ", ".")
        user = User(full_name=name, email=f"{slug}@grandcity.example", department=department, is_active=user_active)
        db.add(user)
        db.flush()
        executive = Executive(user_id=user.id, position=position, is_active=active)
        db.add(executive)
        db.commit()
        return executive

    return factory


@pytest.fixture
def executive(make_executive):
    return make_executive()


@pytest.fixture
def make_visit(db, executive):
    def factory(
        code=None,
        scheduled_date=None,
        status=VisitStatus.scheduled,
        approval=ApprovalStatus.pending,
        phone="+2348000000001",
    ):
        visitor = db.query(Visitor).filter(Visitor.phone == phone).first()
        if not visitor:
            visitor = Visitor(full_name="Test Visitor", phone=phone)
            db.add(visitor)
            db.flush()
        visit = Visit(
            visit_code=code,
            visitor_id=visitor.id,
            executive_id=executive.id,
            scheduled_date=scheduled_date or date.today(),
            visit_status=status,
            approval_status=approval,
        )
        db.add(visit)
        db.commit()
        return visit

    return factory


@pytest.fixture
def client(session_factory, settings):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
