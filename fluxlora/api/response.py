"""
Uniform JSON response envelope.

Every response, success or error, has the shape
    {"success": bool, "data" | "error": ..., "meta": {"timestamp", "requestId"}}
and carries the same CORS headers.
"""
import json
import random
import string
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fluxlora.api.events import ApiResponse
from fluxlora.config.settings import Settings
from fluxlora.database.records import utc_now_iso

_ALPHABET = string.ascii_lowercase + string.digits


class CorsPolicy:
    """CORS header configuration shared by every response."""

    def __init__(self, origin: str = "*", methods: Optional[List[str]] = None,
                 allowed_headers: Optional[List[str]] = None, max_age: int = 86400):
        self.origin = origin
        self.methods = methods or ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
        self.allowed_headers = allowed_headers or ["Content-Type", "Authorization"]
        self.max_age = max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> "CorsPolicy":
        return cls(
            origin=settings.CORS_ORIGIN,
            methods=settings.CORS_METHODS,
            allowed_headers=settings.CORS_ALLOWED_HEADERS,
        )

    def headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.origin,
            "Access-Control-Allow-Methods": ", ".join(self.methods),
            "Access-Control-Allow-Headers": ", ".join(self.allowed_headers),
        }


def generate_request_id() -> str:
    suffix = "".join(random.choices(_ALPHABET, k=13))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _meta(extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta = {"timestamp": utc_now_iso(), "requestId": generate_request_id()}
    if extra:
        meta.update(extra)
    return meta


class Envelope:
    """Builds success and error responses"""

    def __init__(self, cors: Optional[CorsPolicy] = None):
        self.cors = cors or CorsPolicy()

    def _respond(self, status_code: int, payload: Dict[str, Any]) -> ApiResponse:
        headers = {"Content-Type": "application/json", **self.cors.headers()}
        return ApiResponse(
            status_code=status_code,
            headers=headers,
            body=json.dumps(payload, default=_json_default),
        )

    def success(self, data: Any, status_code: int = 200, meta: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._respond(status_code, {"success": True, "data": data, "meta": _meta(meta)})

    def error(self, message: str, status_code: int = 400, code: Optional[str] = None,
              details: Optional[Any] = None) -> ApiResponse:
        error: Dict[str, Any] = {"message": message}
        if code is not None:
            error["code"] = code
        if details is not None:
            error["details"] = details
        return self._respond(status_code, {"success": False, "error": error, "meta": _meta()})

    def unauthorized(self, message: str = "Unauthorized") -> ApiResponse:
        return self.error(message, 401, "UNAUTHORIZED")

    def forbidden(self, message: str = "Access denied") -> ApiResponse:
        return self.error(message, 403, "FORBIDDEN")

    def not_found(self, message: str = "Resource not found") -> ApiResponse:
        return self.error(message, 404, "NOT_FOUND")

    def validation_error(self, message: str, details: Optional[Any] = None) -> ApiResponse:
        return self.error(message, 400, "VALIDATION_ERROR", details)

    def method_not_allowed(self, message: str = "Method not allowed") -> ApiResponse:
        return self.error(message, 405, "METHOD_NOT_ALLOWED")

    def conflict(self, message: str = "Resource conflict") -> ApiResponse:
        return self.error(message, 409, "CONFLICT")

    def internal_error(self, message: str = "Internal server error") -> ApiResponse:
        return self.error(message, 500, "INTERNAL_ERROR")

    def preflight(self) -> ApiResponse:
        """Empty 200 answer to an OPTIONS request"""
        headers = {**self.cors.headers(), "Access-Control-Max-Age": str(self.cors.max_age)}
        return ApiResponse(status_code=200, headers=headers, body="")
