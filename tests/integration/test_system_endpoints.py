"""
Integration Tests for System Endpoints, Error Rendering and Tooling Scripts
"""

import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from app import app
from db import get_db
from models import Category, Course, Lesson, User
from utils.access_control import RequestContext


class TestSystemEndpoints:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Course Marketplace API"
        assert body["status"] == "operational"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["checks"]["database"] == "operational"

    def test_correlation_id_echoed(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "trace-123"})
        assert response.headers["X-Correlation-ID"] == "trace-123"
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Not Found"}


class TestUnexpectedErrors:
    def test_internal_error_response(self, test_db, student, auth_headers, monkeypatch):
        def explode(self):
            raise RuntimeError("profile store offline")

        monkeypatch.setattr(RequestContext, "profile", explode)
        app.dependency_overrides[get_db] = lambda: test_db
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                headers = {**auth_headers(student.id), "X-Correlation-ID": "corr-500"}
                response = client.get("/api/profile", headers=headers)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "error": "Internal server error: profile store offline",
            "code": "INTERNAL_ERROR",
        }
        assert response.headers["X-Correlation-ID"] == "corr-500"
        assert response.headers["X-Request-ID"].startswith("req_")


class TestScripts:
    def test_seed_is_idempotent(self, test_db):
        from scripts.seed_marketplace import seed

        first = seed(test_db)
        second = seed(test_db)

        assert first == {"categories": 3, "courses_created": 3}
        assert second == {"categories": 3, "courses_created": 0}
        assert test_db.query(Category).count() == 3
        assert test_db.query(Course).count() == 3
        assert test_db.query(Lesson).count() == 6
        assert test_db.query(User).count() == 1

    def test_seeded_catalog_is_browsable(self, client, test_db):
        from scripts.seed_marketplace import seed

        seed(test_db)
        titles = [c["title"] for c in client.get("/api/courses?published=true&sort=title&order=asc").json()]
        assert titles == ["Complete Web Development Bootcamp", "Python Data Science Complete Course"]

    def test_export_openapi(self, tmp_path):
        from scripts.export_openapi import export_schema

        output = export_schema(tmp_path)
        schema = json.loads(output.read_text())
        assert "/api/courses" in schema["paths"]
        assert "/api/lessons/{lesson_id}/progress" in schema["paths"]

        assert "ErrorResponse" in schema["components"]["schemas"]
        not_found = schema["paths"]["/api/enrollments"]["post"]["responses"]["404"]
        assert not_found["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")

    @pytest.mark.parametrize("value", [{"x-internal": 1, "keep": [{"x-a": 2, "b": 3}]}])
    def test_vendor_extensions_stripped(self, value):
        from scripts.export_openapi import strip_vendor_extensions

        assert strip_vendor_extensions(value) == {"keep": [{"b": 3}]}
