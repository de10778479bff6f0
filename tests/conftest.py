"""
Shared fixtures: a fresh in-memory SQLite database per test, factories for
the common entities, and an HTTP client wired to the same database.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from echo_api.core.database import Base, build_engine, create_tables, get_db
from echo_api.core.security import create_access_token
from echo_api.crud import questionnaire as questionnaire_crud
from echo_api.crud import restaurant as restaurant_crud
from echo_api.services.table_service import TableService


def sample_questions():
    return [
        {
            "id": "q1",
            "text": "How was the food?",
            "type": "multiple_choice",
            "options": [
                {"label": "Great", "value": "great"},
                {"label": "Okay", "value": "okay"},
                {"label": "Bad", "value": "bad"},
            ],
        },
        {"id": "q2", "text": "Anything else?", "type": "text_input"},
    ]


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://")
    create_tables(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_restaurant(db):
    def _make(name="Harbour Grill", address="1 Pier Rd", city="Singapore"):
        return restaurant_crud.create_restaurant(db, name=name, address=address, city=city)
    return _make


@pytest.fixture
def make_questionnaire(db):
    def _make(title="Dinner survey", questions=None, is_active=True):
        return questionnaire_crud.create_questionnaire(
            db,
            title=title,
            questions=questions if questions is not None else sample_questions(),
            is_active=is_active,
        )
    return _make


@pytest.fixture
def make_table(db):
    """Creates a table through the service so a scan code is provisioned."""
    def _make(restaurant, table_number="1"):
        return TableService(db).create_table(restaurant.id, table_number)
    return _make


@pytest.fixture
def client(session_factory):
    from echo_api.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {create_access_token('staff-1')}"}


@pytest.fixture
def questions():
    return sample_questions()
