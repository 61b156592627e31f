import os

# must be set before config.settings is imported
os.environ.setdefault("SQLALCHEMY_DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from fastapi.testclient import TestClient

from database.db import Base, SessionLocal, engine
from main import app

AUTH_HEADERS = {"Authorization": f"Bearer {os.environ['ADMIN_API_TOKEN']}"}


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    app.state.rate_limiter.reset()
    with TestClient(app) as c:
        c.headers.update(AUTH_HEADERS)
        yield c

