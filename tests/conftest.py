"""
Shared test fixtures.

Environment is set before the app is imported: in-memory SQLite (StaticPool),
cheap bcrypt rounds, temp dirs for uploads and email templates, and no SMTP.
Every test gets freshly created tables with seeded roles and permissions.
"""

import os
import shutil
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="hr-tests-")

os.environ.update({
    "DATABASE_URL": "sqlite://",
    "AUTO_CREATE_TABLES": "false",
    "BCRYPT_ROUNDS": "4",
    "ENVIRONMENT": "test",
    "JWT_SECRET_KEY": "test-secret-key",
    "TWO_FACTOR_ENABLED": "true",
    "API_URL": "http://testserver",
    "WEB_ORIGIN": "http://localhost:5173",
    "UPLOAD_DIR": os.path.join(_TMP_DIR, "uploads"),
    "EMAIL_TEMPLATES_PATH": os.path.join(_TMP_DIR, "email-templates.json"),
    "EMAIL_HOST": "",
    "ADMIN_EMAIL": "",
    "ADMIN_PASSWORD": "",
})

import pytest
from fastapi.testclient import TestClient

from app.core.auth import issue_token_for_user
from app.core.config import get_settings
from app.core.two_factor import get_two_factor_store
from app.db.postgres import engine, get_db_session
from app.db.seed import seed_roles_and_permissions
from app.db.tables import metadata
from app.main import app
from app.services.user_service import create_job_seeker_profile, create_user

PASSWORD = "Passw0rd!"


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate the schema and seed data; clear 2FA challenges and stored templates."""
    metadata.drop_all(bind=engine)
    metadata.create_all(bind=engine)
    seed_roles_and_permissions()
    get_two_factor_store().clear()

    templates_path = get_settings().email_templates_path
    if os.path.exists(templates_path):
        os.remove(templates_path)
    yield
    shutil.rmtree(get_settings().upload_dir, ignore_errors=True)
    os.makedirs(get_settings().upload_dir, exist_ok=True)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    """Create a user with one role directly in the database. Returns (user_id, headers)."""
    counter = {"n": 0}

    def _make(role: str = "JOB_SEEKER", email: str = None, first_name: str = "Test", last_name: str = "User"):
        counter["n"] += 1
        email = email or f"{role.lower()}{counter['n']}@example.com"
        with get_db_session() as db:
            user_id = create_user(db, first_name, last_name, email, PASSWORD, role)
            if role == "JOB_SEEKER":
                create_job_seeker_profile(db, user_id)
        token = issue_token_for_user(user_id)["access_token"]
        return user_id, auth(token)

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("ADMIN", email="admin@example.com", first_name="Ada", last_name="Admin")


@pytest.fixture
def job_seeker(make_user):
    return make_user("JOB_SEEKER", email="seeker@example.com", first_name="Sam", last_name="Seeker")


@pytest.fixture
def register_employer(client):
    """Register an employer with a company through the API. Returns (user_id, headers, company)."""

    def _register(email: str = "employer@example.com", company_name: str = "Acme Ltd"):
        response = client.post("/api/auth/register/employer", json={
            "first_name": "Eve",
            "last_name": "Employer",
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "company": {"name": company_name, "industry": "Software", "city": "Nairobi"},
        })
        assert response.status_code == 201, response.text
        body = response.json()
        headers = auth(body["access_token"])
        companies = client.get("/api/companies", headers=headers).json()
        return body["user"]["id"], headers, companies[0]

    return _register


@pytest.fixture
def employer(register_employer):
    return register_employer()


@pytest.fixture
def create_job(client):
    def _create(headers: dict, company_id: str, **fields):
        payload = {"company_id": company_id, "title": "Backend Engineer", "location": "Remote",
                   "salary_min": 1000, "salary_max": 2000, **fields}
        response = client.post("/api/jobs", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
