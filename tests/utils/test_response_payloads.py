import json
import uuid
from datetime import datetime, timezone

from app.api.utils.response_payloads import auth_response, error_response, success_response


def _body(response):
    return json.loads(response.body)


def test_success_response_merges_data():
    response = success_response(201, "Created", data={"totalUsers": 3, "user": {"id": uuid.UUID(int=1)}})

    assert response.status_code == 201
    assert _body(response) == {
        "success": True,
        "status_code": 201,
        "message": "Created",
        "totalUsers": 3,
        "user": {"id": "00000000-0000-0000-0000-000000000001"},
    }


def test_success_response_without_message():
    body = _body(success_response(200, data={"timestamp": datetime(2025, 1, 1, tzinfo=timezone.utc)}))

    assert "message" not in body
    assert body["timestamp"] == "2025-01-01T00:00:00+00:00"


def test_error_response_shape():
    response = error_response(status_code=400, message="Email is required")

    assert response.status_code == 400
    assert _body(response) == {
        "success": False,
        "error": "ERROR",
        "message": "Email is required",
        "status_code": 400,
        "errors": {},
    }


def test_error_response_with_field_errors_and_data():
    body = _body(
        error_response(
            status_code=429,
            message="Slow down",
            error="RATE_LIMIT_EXCEEDED",
            errors={"email": ["bad"]},
            data={"retryAfter": 60},
        )
    )

    assert body["errors"] == {"email": ["bad"]}
    assert body["retryAfter"] == 60
    assert body["error"] == "RATE_LIMIT_EXCEEDED"


def test_auth_response():
    assert _body(auth_response(False, message="No authentication token found")) == {
        "authenticated": False,
        "message": "No authentication token found",
    }
    assert _body(auth_response(True, user={"email": "ada@example.com"})) == {
        "authenticated": True,
        "user": {"email": "ada@example.com"},
    }
    assert auth_response(False, status_code=500).status_code == 500
