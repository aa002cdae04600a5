import os
import tempfile

# must be set before config/database are imported
_tmpdir = tempfile.mkdtemp(prefix="kakeibo-test-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmpdir, "test.db")
os.environ["APP_ENV"] = "test"
os.environ["DEFAULT_USERNAME"] = "admin"
os.environ["SESSION_COOKIE_SECURE"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import DEFAULT_PASSWORD


@pytest.fixture
def app():
    from main import app

    app.state.sessions.clear()
    app.state.limiter.reset()
    app.state.login_limiter.reset()
    return app


@pytest.fixture
def db():
    from database import Base, SessionLocal, engine
    from models import Expense

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    session.query(Expense).delete()
    session.commit()
    yield session
    session.close()


@pytest.fixture
def memory_db():
    """A throwaway database with empty tables."""
    from database import Base

    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(app, db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def logged_in(client):
    response = client.post("/api/auth/login", json={"password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    return client
