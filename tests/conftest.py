import os

from dotenv import load_dotenv

load_dotenv()
# every test runs against a private in-memory database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["READING_STORE"] = "database"
os.environ["TIMEZONE"] = "Asia/Jakarta"

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db.base import Base
from app.db.init_db import seed_defaults
from app.db.session import SessionLocal, engine
from app.main import app
from app.models.user import ROLE_ADMIN, User
from app.services import user_service
from app.services.logger_service import logging_controller
from app.services.reading_store import SqlReadingStore, set_reading_store
from app.services.sensor_cache import sensor_cache


@pytest.fixture(autouse=True)
def fresh_state():
    """
    Recreates the schema, seeds the default admin and interval catalogue
    (60s, 300s, 600s) and resets the process-wide singletons.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    seed_defaults()
    set_reading_store(SqlReadingStore())
    sensor_cache.clear()

    yield

    logging_controller.stop_all()
    logging_controller._sessions.clear()
    sensor_cache.clear()


@pytest.fixture
def client():
    """
    TestClient without the lifespan context, so the background scheduler is
    never started. Session jobs are still registered (as pending jobs).
    """
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def admin_user(db_session):
    return db_session.query(User).filter(User.role == ROLE_ADMIN).first()


@pytest.fixture
def regular_user(db_session):
    return user_service.create_user(db_session, "operator", "operator@example.com", "secret123")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(regular_user):
    return auth_headers(regular_user)


@pytest.fixture
def make_headers():
    return auth_headers
