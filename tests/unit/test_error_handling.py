import pytest
from sqlalchemy.exc import IntegrityError

from models import Category
from utils.error_handling import (
    ApiError,
    DuplicateEnrollment,
    DuplicateName,
    IncompleteCourse,
    NotFound,
    Unauthenticated,
    persist,
    validate_resource_exists,
)


class TestApiErrors:
    def test_defaults(self):
        error = DuplicateEnrollment()
        assert error.status_code == 400
        assert error.to_dict() == {"error": "Already enrolled in this course", "code": "ALREADY_ENROLLED"}

    def test_code_omitted_when_absent(self):
        assert Unauthenticated().to_dict() == {"error": "Authentication required"}
        assert Unauthenticated().status_code == 401

    def test_overrides(self):
        error = NotFound("Course not found", "COURSE_NOT_FOUND")
        assert error.status_code == 404
        assert error.to_dict()["code"] == "COURSE_NOT_FOUND"

    def test_incomplete_course_message(self):
        assert IncompleteCourse().message == "Course must be 100% complete to issue certificate"

    def test_all_errors_share_base(self):
        assert issubclass(IncompleteCourse, ApiError)

    def test_validate_resource_exists(self):
        assert validate_resource_exists("row", "Missing") == "row"
        with pytest.raises(NotFound):
            validate_resource_exists(None, "Missing", resource_id=3)


class TestPersist:
    """Commit helper and unique-constraint mapping"""

    def test_commits_on_success(self, test_db):
        with persist(test_db, "create category"):
            test_db.add(Category(name="Design"))
        assert test_db.query(Category).count() == 1

    def test_integrity_error_becomes_conflict(self, test_db):
        test_db.add(Category(name="Design"))
        test_db.commit()

        with pytest.raises(DuplicateName) as exc_info:
            with persist(test_db, "create category", DuplicateName("Category name already exists")):
                test_db.add(Category(name="Design"))
        assert exc_info.value.code == "DUPLICATE_NAME"
        assert test_db.query(Category).count() == 1

    def test_integrity_error_propagates_without_conflict(self, test_db):
        test_db.add(Category(name="Design"))
        test_db.commit()

        with pytest.raises(IntegrityError):
            with persist(test_db, "create category"):
                test_db.add(Category(name="Design"))
