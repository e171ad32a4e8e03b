"""
Body validators used by the body-validation middleware and by handlers
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Type, TypeVar
from urllib.parse import urlparse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from fluxlora.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ValidationResult:
    is_valid: bool
    errors: Optional[Any] = None


Validator = Callable[[Any], ValidationResult]


def format_errors(error: PydanticValidationError) -> List[dict]:
    """Reduce pydantic errors to caller-meaningful field/message pairs"""
    return [
        {"field": ".".join(str(part) for part in item["loc"]) or "body", "message": item["msg"]}
        for item in error.errors()
    ]


def parse_model(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate a payload against a schema, raising a 400 on failure"""
    if payload is None:
        raise ValidationError("Request body is required")
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Request validation failed", details=format_errors(e))


def require_fields(*fields: str) -> Validator:
    def validate(body: Any) -> ValidationResult:
        if not isinstance(body, dict):
            return ValidationResult(False, {"missingFields": list(fields)})
        missing = [name for name in fields if not body.get(name)]
        if missing:
            return ValidationResult(False, {"missingFields": missing})
        return ValidationResult(True)
    return validate


def schema_validator(model: Type[BaseModel]) -> Validator:
    def validate(body: Any) -> ValidationResult:
        if body is None:
            return ValidationResult(False, [{"field": "body", "message": "Request body is required"}])
        try:
            model.model_validate(body)
        except PydanticValidationError as e:
            return ValidationResult(False, format_errors(e))
        return ValidationResult(True)
    return validate


def all_of(*validators: Validator) -> Validator:
    """Run validators in order and report the first failure"""
    def validate(body: Any) -> ValidationResult:
        for validator in validators:
            result = validator(body)
            if not result.is_valid:
                return result
        return ValidationResult(True)
    return validate


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """Trim, strip angle brackets and cap the length"""
    if not isinstance(value, str):
        return ""
    return re.sub(r"[<>]", "", value.strip())[:max_length]


def is_valid_url(value: str) -> bool:
    if not value or not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
