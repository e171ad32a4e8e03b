"""
Transport-neutral request and response objects passed through the handler pipeline
"""
import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from fluxlora.auth.security import Identity
from fluxlora.exceptions import ValidationError

_UNPARSED = object()


@dataclass
class ApiRequest:
    method: str
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    identity: Optional[Identity] = None
    undecodable: bool = field(default=False, repr=False)
    _parsed_body: Any = field(default=_UNPARSED, repr=False)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any:
        """Parsed JSON body, or None for an empty body"""
        if self._parsed_body is _UNPARSED:
            if self.undecodable:
                raise ValidationError("Invalid request body", code="INVALID_BODY")
            if self.body is None or not self.body.strip():
                self._parsed_body = None
            else:
                try:
                    self._parsed_body = json.loads(self.body)
                except ValueError:
                    raise ValidationError("Invalid request body", code="INVALID_BODY")
        return self._parsed_body

    def json_object(self) -> dict:
        """Body that must be a JSON object"""
        payload = self.json()
        if payload is None:
            raise ValidationError("Request body is required")
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object", code="INVALID_BODY")
        return payload

    @classmethod
    def from_lambda_event(cls, event: dict) -> "ApiRequest":
        """Build from an API Gateway proxy event"""
        body = event.get("body")
        undecodable = False
        if body is not None and event.get("isBase64Encoded"):
            # reported by json() so the error goes out through the pipeline
            try:
                body = base64.b64decode(body, validate=True).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                body, undecodable = None, True
        return cls(
            method=(event.get("httpMethod") or "GET").upper(),
            path=event.get("path") or "/",
            headers=dict(event.get("headers") or {}),
            path_params=dict(event.get("pathParameters") or {}),
            query_params=dict(event.get("queryStringParameters") or {}),
            body=body,
            undecodable=undecodable,
        )


@dataclass
class ApiResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None

    def to_lambda_result(self) -> dict:
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
        }


Handler = Callable[[ApiRequest], ApiResponse]
