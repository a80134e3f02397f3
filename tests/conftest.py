"""
Shared test fixtures — SQLite test database, test client, sample projects.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point settings at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from estimator.database import Base, get_db
from estimator.main import app


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def project_payload():
    """One billable 100/day × 10 days row, DIRECT pricing, no tax."""
    return {
        "name": "Website Rebuild",
        "client": "Acme Co",
        "pricing_mode": "DIRECT",
        "execution_days": 10,
        "buffer_days": 2,
        "final_days": 1,
        "people": [
            {
                "person_label": "Senior Developer",
                "price_per_day": 100,
                "allocated_days": 10,
                "utilization_percent": 100,
            },
        ],
    }
