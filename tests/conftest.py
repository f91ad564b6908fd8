"""
Pytest configuration: a throwaway SQLite database and factories for users and courses
"""
import itertools
import os
import tempfile

import pytest

# Must be set before catalog.config is imported
_db_dir = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = "sqlite:///{}".format(os.path.join(_db_dir, "catalog.db"))
os.environ["SECRET_KEY"] = "test-secret-key-minimum-32-characters-long"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "AdminPass123"
os.environ["REDIS_HOST"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from catalog.database import Base, SessionLocal, engine  # noqa: E402
from catalog.models import Course, User  # noqa: E402
from catalog.oauth2 import hash_password  # noqa: E402
from catalog.roles import UserRole  # noqa: E402

PASSWORD = "Password123"


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make_user(email=None, role=UserRole.STUDENT.value):
        n = next(counter)
        user = User(
            name=f"Student {n}",
            email=email or f"student{n}@example.com",
            hashed_password=hash_password(PASSWORD),
            role=role,
            student_id=f"S{n}",
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_course(db):
    counter = itertools.count(1)

    def _make_course(**overrides):
        n = next(counter)
        fields = {
            "title": f"Course {n}",
            "course_code": f"CS {100 + n}",
            "description": "An introductory course",
            "instructor": "Dr. Smith",
            "credits": 3,
        }
        fields.update(overrides)
        course = Course(**fields)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make_course


@pytest.fixture
def client():
    """
    FastAPI test client, startup events included (seeds the admin user)
    """
    from catalog.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    def _register(email="student@example.com", name="Test Student", password=PASSWORD):
        response = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return {"Authorization": "Bearer {}".format(response.json()["access_token"])}

    return _register


@pytest.fixture
def admin_headers(client):
    response = client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": "Bearer {}".format(response.json()["access_token"])}
