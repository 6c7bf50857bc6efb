import pytest
import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment variables before the app reads its settings
os.environ["NODE_ENV"] = "test"
os.environ["SQLALCHEMY_TEST_DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["AUTH_JWT_SECRET"] = "marketplace-test-signing-secret-0123456789"
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app import app
from db import enable_sqlite_foreign_keys, get_db
from models import Base, Category, Course, Enrollment, Lesson, ProfileRole, User, UserProfile
from utils.jwt_utils import create_access_token


@pytest.fixture(scope="session")
def test_engine():
    """In-memory SQLite shared by every connection"""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Fresh schema and session for each test"""
    Base.metadata.create_all(bind=test_engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(test_db):
    """Create test client with test database"""

    def override_get_db():
        # The test keeps using this session after the request
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user id"""

    def build(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return build


@pytest.fixture
def make_user(test_db):
    def build(user_id: str, name: str = None, role: ProfileRole = None) -> User:
        user = User(id=user_id, name=name or user_id.title(), email=f"{user_id}@example.com")
        test_db.add(user)
        if role is not None:
            test_db.add(UserProfile(user_id=user_id, role=role))
        test_db.commit()
        return user

    return build


@pytest.fixture
def instructor(make_user):
    return make_user("instructor-1", "Ada Instructor", ProfileRole.INSTRUCTOR)


@pytest.fixture
def student(make_user):
    return make_user("student-1", "Sam Student", ProfileRole.STUDENT)


@pytest.fixture
def other_student(make_user):
    return make_user("student-2", "Olive Other", ProfileRole.STUDENT)


@pytest.fixture
def category(test_db):
    category = Category(name="Web Development", description="Building for the web")
    test_db.add(category)
    test_db.commit()
    return category


@pytest.fixture
def make_course(test_db):
    def build(instructor: User, title: str = "Intro to HTTP", **fields) -> Course:
        values = {"description": f"{title} description", "price": 50.0, "published": True}
        values.update(fields)
        course = Course(title=title, instructor_id=instructor.id, **values)
        test_db.add(course)
        test_db.commit()
        return course

    return build


@pytest.fixture
def course(make_course, instructor, category):
    return make_course(instructor, category_id=category.id)


@pytest.fixture
def make_lesson(test_db):
    def build(course: Course, title: str = "Welcome", section: str = "Getting Started", order: int = 1, **fields):
        lesson = Lesson(course_id=course.id, section_title=section, title=title, order_index=order, **fields)
        test_db.add(lesson)
        test_db.commit()
        return lesson

    return build


@pytest.fixture
def lesson(make_lesson, course):
    return make_lesson(course, video_url="https://videos.example.com/1.mp4", transcript="Hello")


@pytest.fixture
def enroll(test_db):
    def build(user: User, course: Course, progress: int = 0, **fields) -> Enrollment:
        enrollment = Enrollment(user_id=user.id, course_id=course.id, progress=progress, **fields)
        test_db.add(enrollment)
        test_db.commit()
        return enrollment

    return build
