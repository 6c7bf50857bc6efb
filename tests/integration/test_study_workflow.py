"""
Integration Tests for Lesson Notes and Lesson Progress
"""

from fastapi import status

from models import LessonProgress


class TestNotes:
    def test_note_lifecycle(self, client, student, lesson, auth_headers):
        headers = auth_headers(student.id)
        url = f"/api/lessons/{lesson.id}/notes"

        response = client.post(url, json={"content": "Remember status codes"}, headers=headers)
        assert response.status_code == status.HTTP_201_CREATED
        note = response.json()
        assert note["userId"] == student.id

        assert [n["id"] for n in client.get(url, headers=headers).json()] == [note["id"]]

        response = client.put(f"{url}?id={note['id']}", json={"content": "Updated"}, headers=headers)
        assert response.json()["content"] == "Updated"

        response = client.delete(f"{url}?id={note['id']}", headers=headers)
        assert response.json()["message"] == "Note deleted successfully"
        assert response.json()["deletedNote"]["id"] == note["id"]
        assert client.get(url, headers=headers).json() == []

    def test_notes_are_private(self, client, student, other_student, lesson, auth_headers):
        url = f"/api/lessons/{lesson.id}/notes"
        note_id = client.post(url, json={"content": "mine"}, headers=auth_headers(student.id)).json()["id"]

        other = auth_headers(other_student.id)
        assert client.get(url, headers=other).json() == []
        response = client.put(f"{url}?id={note_id}", json={"content": "theirs"}, headers=other)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "Note not found"

    def test_note_must_belong_to_lesson_in_path(self, client, student, course, lesson, make_lesson, auth_headers):
        other_lesson = make_lesson(course, "Other", order=2)
        headers = auth_headers(student.id)
        note_id = client.post(
            f"/api/lessons/{lesson.id}/notes", json={"content": "mine"}, headers=headers
        ).json()["id"]

        response = client.delete(f"/api/lessons/{other_lesson.id}/notes?id={note_id}", headers=headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_note_errors(self, client, student, lesson, auth_headers):
        headers = auth_headers(student.id)
        url = f"/api/lessons/{lesson.id}/notes"
        assert client.post(url, json={}, headers=headers).json()["code"] == "MISSING_CONTENT"
        assert client.put(url, json={"content": "x"}, headers=headers).json()["code"] == "MISSING_NOTE_ID"
        assert client.put(f"{url}?id=x", json={"content": "x"}, headers=headers).json()["code"] == "INVALID_NOTE_ID"
        assert client.get("/api/lessons/999/notes", headers=headers).json()["code"] == "LESSON_NOT_FOUND"


class TestProgress:
    def test_default_when_untracked(self, client, student, lesson, auth_headers):
        response = client.get(f"/api/lessons/{lesson.id}/progress", headers=auth_headers(student.id))
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["completed"] is False
        assert body["lastPosition"] == 0
        assert body["lessonId"] == lesson.id

    def test_upsert_creates_then_updates(self, client, student, lesson, auth_headers, test_db):
        headers = auth_headers(student.id)
        url = f"/api/lessons/{lesson.id}/progress"

        response = client.post(url, json={"lastPosition": 42}, headers=headers)
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["lastPosition"] == 42

        response = client.post(url, json={"completed": True}, headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["completed"] is True
        assert response.json()["completedAt"] is not None
        assert response.json()["lastPosition"] == 42

        response = client.post(url, json={"completed": False}, headers=headers)
        assert response.json()["completedAt"] is None
        assert test_db.query(LessonProgress).count() == 1

    def test_empty_update_rejected(self, client, student, lesson, auth_headers):
        headers = auth_headers(student.id)
        url = f"/api/lessons/{lesson.id}/progress"
        client.post(url, json={"lastPosition": 1}, headers=headers)

        response = client.post(url, json={}, headers=headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "NO_UPDATE_FIELDS"

    def test_progress_is_per_user(self, client, student, other_student, lesson, auth_headers):
        url = f"/api/lessons/{lesson.id}/progress"
        client.post(url, json={"completed": True}, headers=auth_headers(student.id))
        assert client.get(url, headers=auth_headers(other_student.id)).json()["completed"] is False
