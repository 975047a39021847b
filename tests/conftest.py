"""
ClassResponse - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import date
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Set testing environment
TEST_DIR = tempfile.mkdtemp(prefix="classresponse-tests-")
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(TEST_DIR, 'test.db')}"
os.environ['LOG_PATH'] = os.path.join(TEST_DIR, 'logs')
os.environ['SWEEP_ENABLED'] = 'false'
os.environ['EXPIRE_UNSTARTED_SESSIONS'] = 'false'
os.environ['TIMEZONE'] = 'Asia/Karachi'

from classresponse.app.main import app
from classresponse.app.services import templates as template_service
from classresponse.db import Base
from classresponse.db.models import Course, QuestionType, University
from classresponse.db.session import LocalSession, engine, get_db


@pytest.fixture(scope='function')
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    session = LocalSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_university(db: Session):
    """Factory for tenants"""
    def _make(name="Test University", code=None) -> University:
        university = University(name=name, code=code)
        db.add(university)
        db.commit()
        db.refresh(university)
        return university
    return _make


@pytest.fixture
def university(make_university) -> University:
    return make_university()


@pytest.fixture
def make_course(db: Session):
    def _make(university: University, name="Algorithms", code="CS201", expected_students=0) -> Course:
        course = Course(
            university_id=university.university_id,
            name=name,
            code=code,
            expected_students=expected_students,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        return course
    return _make


@pytest.fixture
def course(make_course, university) -> Course:
    return make_course(university, expected_students=20)


@pytest.fixture
def make_template(db: Session):
    """Factory for templates with questions.

    Each question is a dict of `add_question` keyword arguments; the
    question_type defaults to rating.
    """
    def _make(university_id=None, name="Template", questions=(), is_active=True):
        template = template_service.create_template(db, university_id, name, is_active=is_active)
        created = []
        for params in questions:
            params = dict(params)
            params.setdefault("question_type", QuestionType.rating)
            created.append(template_service.add_question(db, template.template_id, **params))
        db.refresh(template)
        return template, created
    return _make


@pytest.fixture
def session_date() -> date:
    return date(2026, 3, 2)
