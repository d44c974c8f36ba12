# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP-level tests for health, authentication and xAPI routes."""

import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_db
from src.api.middleware.auth import CurrentUser, bearer_token
from src.core.config import get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.xapi import XAPI_EXTENSIONS
from src.infrastructure.database.models import EmailVerificationCode
from src.utils.datetime import utc_now


@pytest.fixture
def app(mock_db):
    application = create_app()

    async def override_db():
        yield mock_db

    application.dependency_overrides[get_db] = override_db
    return application


@pytest.fixture
def client(app):
    # No context manager: the lifespan would try to reach PostgreSQL.
    return TestClient(app)


def _auth_header(role: str = "learner", user_id: str = "user-1") -> dict[str, str]:
    token = JWTManager(get_settings().jwt).create_access_token(user_id, role, language="th")
    return {"Authorization": f"Bearer {token}"}


class TestHealth:
    """Tests for public health routes."""

    def test_liveness(self, client) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_request_id_is_echoed(self, client) -> None:
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"


class TestAuthentication:
    """Tests for bearer token handling on protected routes."""

    def test_missing_token(self, client) -> None:
        response = client.get("/api/v1/notifications/unread-count")

        assert response.status_code == 401

    def test_garbage_token(self, client) -> None:
        response = client.get(
            "/api/v1/notifications/unread-count",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_valid_token(self, client, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=3)

        response = client.get("/api/v1/notifications/unread-count", headers=_auth_header())

        assert response.status_code == 200
        assert response.json() == {"unread_count": 3}

    def test_learner_cannot_use_admin_routes(self, client) -> None:
        response = client.get("/api/v1/admin/users", headers=_auth_header())

        assert response.status_code == 403


class TestCurrentUser:
    """Tests for token parsing and caller permissions."""

    def test_bearer_token_parsing(self) -> None:
        def request(value: str | None) -> SimpleNamespace:
            headers = {} if value is None else {"Authorization": value}
            return SimpleNamespace(headers=headers)

        assert bearer_token(request("Bearer abc.def")) == "abc.def"
        assert bearer_token(request("bearer  abc.def ")) == "abc.def"
        assert bearer_token(request("Basic dXNlcg==")) is None
        assert bearer_token(request("Bearer")) is None
        assert bearer_token(request(None)) is None

    def test_from_payload_defaults(self) -> None:
        manager = JWTManager(get_settings().jwt)
        payload = manager.decode_token(manager.create_access_token("user-1", "author"), expected_type="access")

        user = CurrentUser.from_payload(payload)

        assert user.id == "user-1"
        assert user.is_author is True
        assert user.is_admin is False

    def test_learner_acts_only_for_self(self) -> None:
        learner = CurrentUser(id="user-1")
        admin = CurrentUser(id="admin-1", role="admin")

        assert learner.can_act_for("user-1") is True
        assert learner.can_act_for("user-2") is False
        assert admin.can_act_for("user-2") is True


def _xapi_statement(**overrides) -> dict:
    statement = {
        "id": str(uuid.uuid4()),
        "actor": {"objectType": "Agent", "mbox": "mailto:learner@example.com"},
        "verb": {"id": "http://adlnet.gov/expapi/verbs/completed"},
        "object": {"id": "https://adaptive-lms.com/lessons/abc"},
        "timestamp": "2025-03-01T10:00:00Z",
        "context": {
            "extensions": {
                XAPI_EXTENSIONS["platform"]: "web",
                XAPI_EXTENSIONS["language"]: "en",
            }
        },
    }
    statement.update(overrides)
    return statement


class TestXAPIStatementsRoute:
    """Tests for status codes of POST /api/v1/xapi/statements."""

    def test_stores_single_statement(self, client, mock_db, make_result) -> None:
        statement = _xapi_statement()
        mock_db.execute.return_value = make_result(scalar=None)

        response = client.post("/api/v1/xapi/statements", json=statement, headers=_auth_header())

        assert response.status_code == 201
        assert response.json()["statement_id"] == statement["id"]

    def test_single_duplicate_is_conflict(self, client, mock_db, make_result) -> None:
        statement = _xapi_statement()
        mock_db.execute.return_value = make_result(scalar=statement["id"])

        response = client.post("/api/v1/xapi/statements", json=statement, headers=_auth_header())

        assert response.status_code == 409
        assert response.json()["detail"]["statement_id"] == statement["id"]
        mock_db.add.assert_not_called()

    def test_batch_of_duplicates_is_conflict(self, client, mock_db, make_result) -> None:
        first, second = _xapi_statement(), _xapi_statement()
        mock_db.execute.return_value = make_result(scalars=[first["id"], second["id"]])

        response = client.post("/api/v1/xapi/statements", json=[first, second], headers=_auth_header())

        assert response.status_code == 409
        assert response.json()["detail"]["statement_ids"] == [first["id"], second["id"]]

    def test_invalid_statement_is_bad_request(self, client, mock_db) -> None:
        response = client.post(
            "/api/v1/xapi/statements",
            json=[_xapi_statement(), _xapi_statement(verb={})],
            headers=_auth_header(),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["details"][0]["index"] == 1
        mock_db.add.assert_not_called()


class TestEmailVerificationRoutes:
    """Tests for the public verification code routes."""

    def test_verify_otp_marks_email(self, client, mock_db, make_result) -> None:
        now = utc_now()
        pending = EmailVerificationCode(
            id="code-1",
            email="learner@example.com",
            code="042917",
            language="th",
            expires_at=now + timedelta(minutes=5),
        )
        user = SimpleNamespace(
            id="user-1",
            email="learner@example.com",
            role="learner",
            display_name="Somchai",
            language="th",
            timezone="Asia/Bangkok",
            daily_time_budget_minutes=30,
            leaderboard_opt_in=True,
            email_verified=False,
            is_active=True,
            last_login_at=None,
            created_at=now,
            updated_at=now,
        )
        mock_db.execute.side_effect = [
            make_result(scalar=pending),
            make_result(scalar=user),
            make_result(scalar=None),
        ]

        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": "learner@example.com", "otp": "042917"}
        )

        assert response.status_code == 200
        assert response.json()["email_verified"] is True

    def test_verify_otp_wrong_code(self, client, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": "learner@example.com", "otp": "123456"}
        )

        assert response.status_code == 400

    def test_verify_otp_rejects_malformed_code(self, client) -> None:
        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": "learner@example.com", "otp": "12ab"}
        )

        assert response.status_code == 422

    def test_resend_otp(self, client, mock_db, make_result) -> None:
        user = SimpleNamespace(email="learner@example.com", language="th", email_verified=False)
        mock_db.execute.side_effect = [make_result(scalar=user), make_result()]

        response = client.post("/api/v1/auth/resend-otp", json={"email": "learner@example.com"})

        assert response.status_code == 200
        mock_db.commit.assert_awaited_once()

    def test_resend_otp_unknown_email(self, client, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        response = client.post("/api/v1/auth/resend-otp", json={"email": "ghost@example.com"})

        assert response.status_code == 404
