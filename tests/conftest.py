"""
Shared fixtures: a fresh SQLite file per test and an API client
"""

import pytest
import sys
import os
import tempfile

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

# Settings are read at import time
os.environ["DATABASE_PATH"] = os.path.join(tempfile.mkdtemp(), "portfolio_test.db")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DATABASE"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-the-portfolio-tracker-suite"

import database


@pytest.fixture
def db(tmp_path):
    """Point the database module at an empty file and create the schema"""
    database.DATABASE_PATH = str(tmp_path / "portfolio.db")
    database.init_database()
    database.migrate_database()
    yield database.DATABASE_PATH


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as test_client:
        yield test_client


def register(client, email="alice@example.com", password="Secret123",
             first_name="Alice", last_name="Smith"):
    """Register a user through the API and return the auth payload"""
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "confirm_password": password,
        "first_name": first_name,
        "last_name": last_name,
    })
    assert response.status_code == 200, response.text
    return response.json()["data"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(client):
    return auth_headers(register(client)["access_token"])


@pytest.fixture
def admin_headers(client):
    from services.seeder import seed_database

    seed_database()
    response = client.post("/api/auth/login", json={"email": "admin@portfolio.com", "password": "Admin@123"})
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["data"]["access_token"])


def create_investment(client, headers, **overrides):
    """Create an investment through the API and return it"""
    payload = {
        "name": "Apple Shares",
        "type": "Stocks",
        "initial_amount": 1000.0,
        "quantity": 10,
        "average_price_per_unit": 100,
        "purchase_date": "2024-01-15T00:00:00",
        "broker_platform": "Fidelity",
    }
    payload.update(overrides)
    response = client.post("/api/investments", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]
