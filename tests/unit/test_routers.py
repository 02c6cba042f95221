"""
Tests for the HTTP routers, exercised through create_app

Coverage:
- /api/auth: signup, login, me, logout, change-password, bearer session binding
- /api/projects: CRUD and per-project audits
- /api/audits: analyze, read, notes, delete
- /api/health
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from echo_audit.core.config import Settings
from echo_audit.core.kv_store import InMemoryKeyValueStore
from echo_audit.main import create_app

from .conftest import make_violation, png_base64

PASSWORD = "correct horse"


@pytest.fixture
def oracle():
    oracle = AsyncMock()
    oracle.detect_violations.return_value = [make_violation("medium", "2.5.5")]
    return oracle


@pytest.fixture
def app(oracle):
    settings = Settings(_env_file=None, password_hash_iterations=1000)
    return create_app(settings=settings, store=InMemoryKeyValueStore(), oracle=oracle)


@pytest.fixture
def client(app):
    return TestClient(app)


def _use_session(client, body):
    client.headers["Authorization"] = f"Bearer {body['csrfToken']}"


@pytest.fixture
def signed_up(client):
    response = client.post("/api/auth/signup", json={
        "email": "ada@example.com",
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
        "displayName": "Ada",
    })
    assert response.status_code == 201
    _use_session(client, response.json())
    return response.json()


@pytest.fixture
def project(client, signed_up):
    response = client.post("/api/projects", json={"projectName": "Shop", "websiteUrl": "https://shop.test"})
    assert response.status_code == 201
    return response.json()


# ============================================================================
# AUTH
# ============================================================================

class TestAuthRoutes:

    def test_signup_opens_session(self, client, signed_up):
        assert signed_up["user"]["email"] == "ada@example.com"
        assert "passwordHash" not in signed_up["user"]
        assert len(signed_up["csrfToken"]) == 64
        assert signed_up["sessionTimeout"] == 86400

        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["displayName"] == "Ada"

    def test_signup_duplicate_email(self, client, signed_up):
        response = client.post("/api/auth/signup", json={
            "email": "ADA@example.com", "password": PASSWORD, "displayName": "Again",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_EMAIL"

    def test_signup_rejects_malformed_email(self, client):
        response = client.post("/api/auth/signup", json={
            "email": "not-an-email", "password": PASSWORD, "displayName": "Ada",
        })
        assert response.status_code == 422

    def test_logout_then_me_is_unauthorized(self, client, signed_up):
        assert client.post("/api/auth/logout").status_code == 204

        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "NOT_AUTHENTICATED"
        assert response.headers["Cache-Control"].startswith("no-store")

    def test_login_failures_and_lockout(self, client, signed_up):
        for _ in range(5):
            response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "wrong"})
            assert response.status_code == 401
            assert response.json()["detail"] == "Invalid email or password"

        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_login_success(self, client, signed_up):
        client.post("/api/auth/logout")

        response = client.post("/api/auth/login", json={"email": "Ada@Example.com", "password": PASSWORD})

        assert response.status_code == 200
        assert response.json()["user"]["userId"] == signed_up["user"]["userId"]
        assert response.json()["csrfToken"] != signed_up["csrfToken"]

        assert client.get("/api/auth/me").status_code == 401
        _use_session(client, response.json())
        assert client.get("/api/auth/me").status_code == 200

    def test_change_password(self, client, signed_up):
        response = client.post("/api/auth/change-password", json={
            "currentPassword": PASSWORD, "newPassword": "brand new pass",
        })
        assert response.status_code == 200

        client.post("/api/auth/logout")
        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "brand new pass"})
        assert response.status_code == 200


class TestSessionBinding:

    def test_anonymous_client_cannot_use_live_session(self, app, client, project):
        anonymous = TestClient(app)
        project_id = project["projectId"]

        for response in (
            anonymous.get("/api/auth/me"),
            anonymous.get("/api/projects"),
            anonymous.delete(f"/api/projects/{project_id}"),
            anonymous.post("/api/auth/logout"),
        ):
            assert response.status_code == 401
            assert response.json()["code"] == "NOT_AUTHENTICATED"

        assert client.get(f"/api/projects/{project_id}").status_code == 200
        assert client.get("/api/auth/me").status_code == 200

    def test_wrong_token_is_rejected(self, app, client, signed_up):
        intruder = TestClient(app)
        intruder.headers["Authorization"] = "Bearer " + "0" * 64

        assert intruder.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me").status_code == 200

    def test_token_must_be_bearer(self, app, signed_up):
        other = TestClient(app)
        other.headers["Authorization"] = f"Basic {signed_up['csrfToken']}"

        assert other.get("/api/auth/me").status_code == 401


# ============================================================================
# PROJECTS AND AUDITS
# ============================================================================

class TestProjectRoutes:

    def test_requires_session(self, client):
        assert client.get("/api/projects").status_code == 401

    def test_create_and_list(self, client, project):
        assert project["projectName"] == "Shop"
        assert project["auditCount"] == 0

        response = client.get("/api/projects")
        assert [p["projectId"] for p in response.json()] == [project["projectId"]]

    def test_update(self, client, project):
        response = client.patch(f"/api/projects/{project['projectId']}", json={"description": "Checkout"})

        assert response.status_code == 200
        assert response.json()["description"] == "Checkout"
        assert response.json()["projectName"] == "Shop"

    def test_missing_project(self, client, signed_up):
        response = client.get("/api/projects/proj_missing")

        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"

    def test_save_audit_recomputes_score(self, client, project):
        project_id = project["projectId"]
        response = client.post(f"/api/projects/{project_id}/audits", json={
            "overall_score": 100,
            "violations": [{
                "severity": "critical",
                "wcag_criterion": "1.4.3",
                "title": "Low contrast",
                "description": "Grey text",
                "user_impact": "Unreadable",
            }],
        })

        assert response.status_code == 201
        audit = response.json()
        assert audit["auditVersion"] == 1
        assert audit["accessibilityScore"] == 85
        assert audit["wcagCompliance"] == {"levelA": True, "levelAA": False, "levelAAA": False}
        assert audit["fullReport"]["overall_score"] == 85
        assert audit["fullReport"]["wcag_compliance"]["level_aa"]["pass"] is False

        stats = client.get(f"/api/projects/{project_id}").json()
        assert stats["auditCount"] == 1
        assert stats["latestScore"] == 85

    def test_audit_lifecycle(self, client, project):
        project_id = project["projectId"]
        first = client.post(f"/api/projects/{project_id}/audits", json={"violations": []}).json()
        second = client.post(f"/api/projects/{project_id}/audits", json={"violations": []}).json()

        history = client.get(f"/api/projects/{project_id}/audits").json()
        assert [a["auditVersion"] for a in history] == [2, 1]

        response = client.patch(f"/api/audits/{first['auditId']}/notes", json={"notes": "Retest <form>"})
        assert response.json()["notes"] == "Retest &lt;form&gt;"
        assert client.get(f"/api/audits/{first['auditId']}").json()["notes"] == "Retest &lt;form&gt;"

        assert client.delete(f"/api/audits/{second['auditId']}").status_code == 204
        assert client.get(f"/api/audits/{second['auditId']}").status_code == 404

        response = client.delete(f"/api/projects/{project_id}")
        assert response.json() == {"projectId": project_id, "auditsDeleted": 1}
        assert client.get(f"/api/audits/{first['auditId']}").status_code == 404


class TestAnalyzeRoute:

    def test_analyze_scores_oracle_violations(self, client, signed_up, oracle):
        response = client.post("/api/audits/analyze", json={
            "frames": [{"timestamp": "00:00", "imageData": png_base64()}],
            "code": "<button>Pay</button>",
            "code_filename": "Checkout.tsx",
        })

        assert response.status_code == 200
        report = response.json()
        assert report["overall_score"] == 96
        assert report["summary"]["medium"] == 1
        assert report["wcag_compliance"]["level_aaa"] == {"not_tested": True}
        oracle.detect_violations.assert_awaited_once()

    def test_capture_settings(self, client):
        response = client.get("/api/audits/capture-settings")

        assert response.json() == {"frameIntervalSeconds": 2.0, "maxFrames": 10, "maxCodeChars": 200000}

    def test_capture_settings_plans_seek_points(self, client):
        response = client.get("/api/audits/capture-settings", params={"duration": 7.5})

        assert response.json()["capturePoints"] == ["00:00", "00:02", "00:04", "00:06"]

    def test_capture_points_respect_frame_cap(self, client):
        response = client.get("/api/audits/capture-settings", params={"duration": 600})

        assert len(response.json()["capturePoints"]) == 10
        assert response.json()["capturePoints"][-1] == "00:18"

    def test_analyze_requires_frames(self, client, signed_up):
        response = client.post("/api/audits/analyze", json={"frames": [], "code": "x"})
        assert response.status_code == 422


class TestHealthRoute:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["storage"] is True
