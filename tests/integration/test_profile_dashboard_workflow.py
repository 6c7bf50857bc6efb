"""
Integration Tests for Profiles and Role Dashboards
"""

from fastapi import status

from models import ProfileRole, UserProfile


class TestProfile:
    def test_profile_created_on_first_read(self, client, make_user, auth_headers, test_db):
        user = make_user("fresh-user", "Fresh User")
        response = client.get("/api/profile", headers=auth_headers(user.id))
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["role"] == "student"
        assert body["userName"] == "Fresh User"
        assert body["totalStudents"] == 0
        assert test_db.query(UserProfile).filter(UserProfile.user_id == user.id).count() == 1

    def test_update_role_and_bio(self, client, student, auth_headers):
        response = client.put(
            "/api/profile", json={"role": "instructor", "bio": "Teaching now"}, headers=auth_headers(student.id)
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "instructor"
        assert response.json()["bio"] == "Teaching now"

    def test_protected_fields_rejected(self, client, student, auth_headers):
        response = client.put("/api/profile", json={"totalStudents": 1000}, headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "PROTECTED_FIELDS_NOT_ALLOWED"

    def test_empty_update_and_bad_role(self, client, student, auth_headers):
        headers = auth_headers(student.id)
        assert client.put("/api/profile", json={}, headers=headers).json()["code"] == "NO_UPDATES"
        assert client.put("/api/profile", json={"role": "admin"}, headers=headers).json()["code"] == "INVALID_ROLE"


class TestDashboards:
    def test_instructor_dashboard(self, client, instructor, student, course, enroll, auth_headers):
        enroll(student, course)
        response = client.get("/api/dashboard/instructor", headers=auth_headers(instructor.id))
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["stats"]["totalCourses"] == 1
        assert body["stats"]["totalStudents"] == 1
        assert body["stats"]["totalRevenue"] == course.price
        assert body["courses"][0]["enrollmentCount"] == 1
        assert len(body["monthlyStats"]) == 12
        assert body["recentEnrollments"][0]["student"]["id"] == student.id

    def test_instructor_dashboard_requires_role(self, client, student, auth_headers):
        response = client.get("/api/dashboard/instructor", headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"error": "Access denied. Instructor role required.", "code": "INSTRUCTOR_REQUIRED"}

    def test_student_dashboard(self, client, student, course, lesson, enroll, auth_headers):
        enroll(student, course, progress=40)
        client.post(f"/api/lessons/{lesson.id}/progress", json={"completed": True}, headers=auth_headers(student.id))

        response = client.get("/api/dashboard/student", headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["stats"] == {
            "totalEnrollments": 1,
            "completedCourses": 0,
            "averageProgress": 40,
            "totalCertificates": 0,
        }
        assert body["enrollments"][0]["course"]["instructorName"] == "Ada Instructor"
        assert body["recentActivity"][0]["lessonTitle"] == lesson.title
        assert body["recommendations"] == []

    def test_activity_ignores_courses_no_longer_enrolled(self, client, student, lesson, auth_headers):
        client.post(f"/api/lessons/{lesson.id}/progress", json={"lastPosition": 5}, headers=auth_headers(student.id))
        body = client.get("/api/dashboard/student", headers=auth_headers(student.id)).json()
        assert body["recentActivity"] == []

    def test_student_dashboard_requires_student_role(self, client, instructor, auth_headers):
        response = client.get("/api/dashboard/student", headers=auth_headers(instructor.id))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_missing_profile_defaults_to_student(self, client, make_user, auth_headers, test_db):
        user = make_user("no-profile")
        assert client.get("/api/dashboard/student", headers=auth_headers(user.id)).status_code == 200
        profile = test_db.query(UserProfile).filter(UserProfile.user_id == user.id).one()
        assert profile.role == ProfileRole.STUDENT
