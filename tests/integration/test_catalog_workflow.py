"""
Integration Tests for the Course Catalog
Categories, courses and lessons: public browsing, instructor-only writes
"""

import pytest
from fastapi import status

from models import Category, Course, Lesson


class TestCategories:
    def test_create_and_list(self, client, student, auth_headers):
        headers = auth_headers(student.id)
        response = client.post("/api/categories", json={"name": "Design", "description": "UI"}, headers=headers)
        assert response.status_code == status.HTTP_201_CREATED
        created = response.json()
        assert created["name"] == "Design"
        assert "createdAt" in created

        response = client.get("/api/categories?search=desi", headers=headers)
        assert [c["name"] for c in response.json()] == ["Design"]

        response = client.get(f"/api/categories?id={created['id']}", headers=headers)
        assert response.json()["id"] == created["id"]

    def test_duplicate_name(self, client, student, category, auth_headers):
        response = client.post("/api/categories", json={"name": category.name}, headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Category name already exists", "code": "DUPLICATE_NAME"}

    def test_rename_to_existing_name(self, client, student, category, test_db, auth_headers):
        other = Category(name="Design")
        test_db.add(other)
        test_db.commit()

        response = client.put(
            f"/api/categories?id={other.id}", json={"name": category.name}, headers=auth_headers(student.id)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Category name already exists", "code": "DUPLICATE_NAME"}

    def test_update_and_delete(self, client, student, category, course, auth_headers, test_db):
        headers = auth_headers(student.id)
        response = client.put(f"/api/categories?id={category.id}", json={"name": "Frontend"}, headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Frontend"

        response = client.delete(f"/api/categories?id={category.id}", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Category deleted successfully"

        test_db.expire_all()
        assert test_db.get(Course, course.id).category_id is None

    def test_unknown_category(self, client, student, auth_headers):
        response = client.get("/api/categories?id=999", headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "Category not found"


class TestCourses:
    def test_catalog_is_public(self, client, course, make_course, instructor):
        make_course(instructor, "Draft", published=False)

        response = client.get("/api/courses?published=true")
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [c["title"] for c in body] == [course.title]
        assert body[0]["instructorName"] == "Ada Instructor"
        assert body[0]["categoryName"] == "Web Development"

    def test_get_single_and_missing(self, client, course):
        assert client.get(f"/api/courses?id={course.id}").json()["title"] == course.title

        response = client.get("/api/courses?id=999")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "COURSE_NOT_FOUND"

    def test_invalid_filters(self, client):
        assert client.get("/api/courses?category=abc").json()["code"] == "INVALID_CATEGORY_ID"
        assert client.get("/api/courses?published=maybe").json()["code"] == "INVALID_PUBLISHED"
        assert client.get("/api/courses?limit=x").json()["code"] == "INVALID_LIMIT"

    def test_create_sets_instructor_from_session(self, client, instructor, category, auth_headers):
        response = client.post(
            "/api/courses",
            json={"title": "FastAPI in Depth", "description": "APIs", "price": 30, "categoryId": category.id},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["instructorId"] == instructor.id
        assert body["published"] is False
        assert body["studentsCount"] == 0
        assert body["rating"] == 0

    def test_create_with_unknown_category(self, client, instructor, auth_headers):
        response = client.post(
            "/api/courses",
            json={"title": "T", "description": "D", "price": 1, "categoryId": 42},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "CATEGORY_NOT_FOUND"

    def test_create_missing_fields(self, client, instructor, auth_headers):
        response = client.post("/api/courses", json={"title": "Only a title"}, headers=auth_headers(instructor.id))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {
            "error": "Title, description, and price are required",
            "code": "MISSING_REQUIRED_FIELDS",
        }

    def test_duplicate_title(self, client, instructor, course, auth_headers):
        response = client.post(
            "/api/courses",
            json={"title": course.title, "description": "Again", "price": 10},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Course title already exists", "code": "DUPLICATE_NAME"}

    def test_rename_to_existing_title(self, client, instructor, course, make_course, auth_headers):
        other = make_course(instructor, title="Advanced HTTP")
        response = client.put(
            f"/api/courses?id={other.id}", json={"title": course.title}, headers=auth_headers(instructor.id)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Course title already exists", "code": "DUPLICATE_NAME"}

    def test_update_own_course(self, client, instructor, course, auth_headers):
        response = client.put(
            f"/api/courses?id={course.id}", json={"published": False, "price": 15}, headers=auth_headers(instructor.id)
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["published"] is False
        assert response.json()["price"] == 15

    def test_non_owner_sees_not_found(self, client, student, course, auth_headers):
        headers = auth_headers(student.id)
        for response in (
            client.put(f"/api/courses?id={course.id}", json={"price": 0}, headers=headers),
            client.delete(f"/api/courses?id={course.id}", headers=headers),
        ):
            assert response.status_code == status.HTTP_404_NOT_FOUND
            assert response.json()["error"] == "Course not found or access denied"

    def test_delete_cascades_lessons(self, client, instructor, course, lesson, auth_headers, test_db):
        response = client.delete(f"/api/courses?id={course.id}", headers=auth_headers(instructor.id))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["course"]["id"] == course.id
        assert test_db.query(Lesson).count() == 0


class TestLessons:
    def test_instructor_creates_lesson(self, client, instructor, course, auth_headers):
        response = client.post(
            "/api/lessons",
            json={"courseId": course.id, "sectionTitle": "Basics", "title": "Requests", "orderIndex": 2},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["locked"] is False

    def test_non_instructor_cannot_modify(self, client, student, course, lesson, auth_headers, enroll):
        enroll(student, course)
        headers = auth_headers(student.id)

        response = client.post(
            "/api/lessons",
            json={"courseId": course.id, "sectionTitle": "S", "title": "T", "orderIndex": 3},
            headers=headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "Only the course instructor can modify lessons", "code": "INSTRUCTOR_ONLY"}

        assert client.put(f"/api/lessons?id={lesson.id}", json={"title": "X"}, headers=headers).status_code == 403
        assert client.delete(f"/api/lessons?id={lesson.id}", headers=headers).status_code == 403

    def test_missing_course_on_create(self, client, instructor, auth_headers):
        response = client.post(
            "/api/lessons",
            json={"courseId": 999, "sectionTitle": "S", "title": "T", "orderIndex": 0},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "COURSE_NOT_FOUND"

    def test_read_requires_enrollment_or_ownership(self, client, instructor, student, lesson, auth_headers, enroll):
        response = client.get(f"/api/lessons?id={lesson.id}", headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "Access denied"

        enroll(student, lesson.course)
        assert client.get(f"/api/lessons?id={lesson.id}", headers=auth_headers(student.id)).status_code == 200
        assert client.get(f"/api/lessons?id={lesson.id}", headers=auth_headers(instructor.id)).status_code == 200

    @pytest.mark.parametrize(
        "query, code",
        [("", "MISSING_LESSON_ID"), ("?id=abc", "INVALID_LESSON_ID"), ("?id=999", "LESSON_NOT_FOUND")],
    )
    def test_lesson_id_errors(self, client, student, auth_headers, query, code):
        response = client.get(f"/api/lessons{query}", headers=auth_headers(student.id))
        assert response.json()["code"] == code

    def test_update_and_delete(self, client, instructor, lesson, auth_headers, test_db):
        headers = auth_headers(instructor.id)
        response = client.put(f"/api/lessons?id={lesson.id}", json={"locked": True}, headers=headers)
        assert response.json()["locked"] is True

        response = client.delete(f"/api/lessons?id={lesson.id}", headers=headers)
        assert response.json()["message"] == "Lesson deleted successfully"
        assert test_db.query(Lesson).count() == 0


class TestCurriculum:
    def test_sections_in_lesson_order(self, client, instructor, course, make_lesson, auth_headers):
        make_lesson(course, "Second", section="Intro", order=2)
        make_lesson(course, "First", section="Intro", order=1)
        make_lesson(course, "Deep", section="Advanced", order=3)

        response = client.get(f"/api/courses/{course.id}/lessons", headers=auth_headers(instructor.id))
        assert response.status_code == status.HTTP_200_OK
        sections = response.json()
        assert [s["sectionTitle"] for s in sections] == ["Intro", "Advanced"]
        assert [lesson["title"] for lesson in sections[0]["lessons"]] == ["First", "Second"]

    def test_content_hidden_without_access(self, client, student, course, lesson, auth_headers, enroll):
        outline = client.get(f"/api/courses/{course.id}/lessons", headers=auth_headers(student.id)).json()
        item = outline[0]["lessons"][0]
        assert item["title"] == lesson.title
        assert item["videoUrl"] is None
        assert item["transcript"] is None

        enroll(student, course)
        outline = client.get(f"/api/courses/{course.id}/lessons", headers=auth_headers(student.id)).json()
        assert outline[0]["lessons"][0]["videoUrl"] == "https://videos.example.com/1.mp4"

    def test_nested_create_appends(self, client, instructor, course, lesson, auth_headers, test_db):
        response = client.post(
            f"/api/courses/{course.id}/lessons",
            json={"sectionTitle": "Getting Started", "title": "Next"},
            headers=auth_headers(instructor.id),
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["orderIndex"] == 2
        assert response.json()["courseId"] == course.id

    def test_nested_create_requires_section(self, client, instructor, course, auth_headers):
        response = client.post(
            f"/api/courses/{course.id}/lessons", json={"title": "Next"}, headers=auth_headers(instructor.id)
        )
        assert response.json()["code"] == "MISSING_SECTION_TITLE"
