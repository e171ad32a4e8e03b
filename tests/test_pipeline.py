"""
Tests for the response envelope and the middleware pipeline
"""
import json
import re
from decimal import Decimal
import pytest
from pydantic import BaseModel
from fluxlora.api.events import ApiRequest, ApiResponse
from fluxlora.api.middleware import (
    MiddlewareOptions,
    compose,
    create_middleware_stack,
)
from fluxlora.api.response import CorsPolicy, Envelope, generate_request_id
from fluxlora.api.validation import all_of, require_fields, schema_validator
from fluxlora.auth import Identity, TokenService
from fluxlora.exceptions import ConflictError, NotFoundError, ValidationError

CORS_HEADERS = ("Access-Control-Allow-Origin", "Access-Control-Allow-Methods", "Access-Control-Allow-Headers")


@pytest.fixture
def envelope():
    return Envelope(CorsPolicy(origin="https://app.example.com"))


@pytest.fixture
def tokens():
    return TokenService("pipeline-secret")


def ok_handler(request):
    identity = request.identity
    return Envelope().success({"user": identity.id if identity else None, "body": request.json()})


def auth_header(tokens):
    return {"authorization": "Bearer " + tokens.issue(Identity(id="u1", email="u1@example.com"))}


def test_success_envelope(envelope):
    response = envelope.success({"id": 1}, 201, meta={"pagination": {"page": 1}})
    body = response.json()
    assert response.status_code == 201
    assert body["success"] is True
    assert body["data"] == {"id": 1}
    assert body["meta"]["pagination"] == {"page": 1}
    assert body["meta"]["timestamp"].endswith("Z")
    assert response.headers["Content-Type"] == "application/json"
    assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"


def test_error_envelope_omits_absent_fields(envelope):
    body = envelope.error("Nope").json()
    assert body == {"success": False, "error": {"message": "Nope"}, "meta": body["meta"]}

    body = envelope.validation_error("Bad", [{"field": "email"}]).json()
    assert body["error"] == {"message": "Bad", "code": "VALIDATION_ERROR", "details": [{"field": "email"}]}


@pytest.mark.parametrize("method,status,code", [
    ("unauthorized", 401, "UNAUTHORIZED"),
    ("forbidden", 403, "FORBIDDEN"),
    ("not_found", 404, "NOT_FOUND"),
    ("method_not_allowed", 405, "METHOD_NOT_ALLOWED"),
    ("conflict", 409, "CONFLICT"),
    ("internal_error", 500, "INTERNAL_ERROR"),
])
def test_named_errors(envelope, method, status, code):
    response = getattr(envelope, method)()
    assert response.status_code == status
    assert response.json()["error"]["code"] == code
    for header in CORS_HEADERS:
        assert header in response.headers


def test_request_ids_are_fresh():
    first, second = generate_request_id(), generate_request_id()
    assert re.fullmatch(r"req_\d+_[a-z0-9]{13}", first)
    assert first != second


def test_envelope_serialises_decimals(envelope):
    body = json.loads(envelope.success({"count": Decimal("2"), "rate": Decimal("0.5")}).body)
    assert body["data"] == {"count": 2, "rate": 0.5}


def test_preflight_short_circuits_before_auth(envelope, tokens):
    pipeline = create_middleware_stack(envelope, tokens, MiddlewareOptions(require_auth=True))(ok_handler)
    response = pipeline(ApiRequest(method="OPTIONS"))
    assert response.status_code == 200
    assert response.body == ""
    assert response.headers["Access-Control-Max-Age"] == "86400"


def test_missing_token_is_401_with_cors(envelope, tokens):
    pipeline = create_middleware_stack(envelope, tokens, MiddlewareOptions(require_auth=True))(ok_handler)
    response = pipeline(ApiRequest(method="GET"))
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Missing or invalid authorization header"
    assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"


def test_invalid_token_is_401(envelope, tokens):
    pipeline = create_middleware_stack(envelope, tokens, MiddlewareOptions(require_auth=True))(ok_handler)
    response = pipeline(ApiRequest(method="GET", headers={"Authorization": "Bearer garbage"}))
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"


def test_auth_injects_identity(envelope, tokens):
    pipeline = create_middleware_stack(envelope, tokens, MiddlewareOptions(require_auth=True))(ok_handler)
    response = pipeline(ApiRequest(method="GET", headers=auth_header(tokens)))
    assert response.status_code == 200
    assert response.json()["data"]["user"] == "u1"


def test_unparseable_body_is_400(envelope, tokens):
    options = MiddlewareOptions(validate_body=require_fields("name"))
    pipeline = create_middleware_stack(envelope, tokens, options)(ok_handler)
    response = pipeline(ApiRequest(method="POST", body="{not json"))
    assert response.status_code == 400
    assert response.json()["error"] == {"message": "Invalid request body", "code": "INVALID_BODY"}


def test_invalid_body_reports_details(envelope, tokens):
    options = MiddlewareOptions(validate_body=require_fields("name", "triggerWord"))
    pipeline = create_middleware_stack(envelope, tokens, options)(ok_handler)
    response = pipeline(ApiRequest(method="POST", body=json.dumps({"name": "x"})))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Request validation failed"
    assert error["details"] == {"missingFields": ["triggerWord"]}


def test_valid_body_reaches_handler(envelope, tokens):
    options = MiddlewareOptions(validate_body=require_fields("name"))
    pipeline = create_middleware_stack(envelope, tokens, options)(ok_handler)
    response = pipeline(ApiRequest(method="POST", body=json.dumps({"name": "x"})))
    assert response.json()["data"]["body"] == {"name": "x"}


def test_auth_runs_before_body_validation(envelope, tokens):
    options = MiddlewareOptions(require_auth=True, validate_body=require_fields("name"))
    pipeline = create_middleware_stack(envelope, tokens, options)(ok_handler)
    response = pipeline(ApiRequest(method="POST", body="{not json"))
    assert response.status_code == 401


def test_method_check(envelope, tokens):
    pipeline = create_middleware_stack(envelope, tokens, MiddlewareOptions(methods=["POST"]))(ok_handler)
    assert pipeline(ApiRequest(method="GET")).status_code == 405
    assert pipeline(ApiRequest(method="OPTIONS")).status_code == 200


@pytest.mark.parametrize("error,status", [
    (ValidationError("bad"), 400),
    (NotFoundError("Model not found"), 404),
    (ConflictError("dup"), 409),
])
def test_app_errors_are_classified(envelope, tokens, error, status):
    def failing(request):
        raise error
    response = create_middleware_stack(envelope, tokens)(failing)(ApiRequest(method="GET"))
    assert response.status_code == status
    assert response.json()["error"]["message"] == error.message


def test_unexpected_errors_do_not_leak(envelope, tokens):
    def failing(request):
        raise RuntimeError("connection string postgres://secret@db")
    response = create_middleware_stack(envelope, tokens)(failing)(ApiRequest(method="GET"))
    assert response.status_code == 500
    assert response.json()["error"] == {"message": "Internal server error", "code": "INTERNAL_ERROR"}
    assert "secret" not in response.body
    assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.com"


def test_only_validation_errors_expose_details(envelope, tokens):
    def failing(request):
        raise NotFoundError("Model not found", details={"table": "internal-table-name"})
    response = create_middleware_stack(envelope, tokens)(failing)(ApiRequest(method="GET"))
    assert "details" not in response.json()["error"]


def test_compose_applies_outermost_first():
    calls = []

    def tag(name):
        def middleware(handler):
            def wrapped(request):
                calls.append(name)
                return handler(request)
            return wrapped
        return middleware

    compose(tag("a"), tag("b"), tag("c"))(lambda request: ApiResponse(204))(ApiRequest(method="GET"))
    assert calls == ["a", "b", "c"]


class Named(BaseModel):
    name: str


def test_schema_and_combined_validators():
    validator = all_of(require_fields("name"), schema_validator(Named))
    assert validator({"name": "x"}).is_valid
    assert validator({}).errors == {"missingFields": ["name"]}
    result = schema_validator(Named)({"name": 5})
    assert not result.is_valid
    assert result.errors[0]["field"] == "name"
