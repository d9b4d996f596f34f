from pathlib import Path
from types import SimpleNamespace
import os
import tempfile

# Settings are read at import time, so point them at a throwaway database first.
_DB_DIR = Path(tempfile.mkdtemp(prefix="edwind-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["ENV"] = "test"
os.environ["ALLOW_INSECURE_JWT"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from edwind import models, services
from edwind.auth import AuthenticatedUser, get_current_user
from edwind.database import create_db_and_tables, drop_db_and_tables, engine
from edwind.main import app

TEST_USER = AuthenticatedUser(
    id="user_test",
    email="trainer@example.com",
    first_name="Terry",
    last_name="Trainer",
    organization_id="org_test",
    session_id="session_test",
)


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate every table so each test starts from an empty database."""
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def db():
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db):
    """A project linked to one curriculum/course/assessment with one enrollment."""
    recipient = models.TrainingRecipient(name="Acme Logistics")
    db.add(recipient)
    db.commit()
    db.refresh(recipient)
    courses = services.CourseService(db)
    course = courses.create({"title": "Warehouse Safety"})
    assessment = courses.create_assessment(course.id, {"title": "Safety Quiz", "passing_score": 70})
    curriculum = services.CurriculumService(db).create({"title": "Onboarding", "course_ids": [course.id]})
    project = services.ProjectService(db).create({
        "title": "Acme Onboarding",
        "training_recipient_id": recipient.id,
        "curriculum_ids": [curriculum.id],
    })
    enrollment = services.EnrollmentService(db).enroll(
        project.id, {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"}
    )["enrollment"]
    return SimpleNamespace(
        recipient=recipient,
        course=course,
        assessment=assessment,
        curriculum=curriculum,
        project=project,
        enrollment=enrollment,
    )
