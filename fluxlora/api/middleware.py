"""
Composable request pipeline.

Each middleware takes a handler and returns a handler with the same
ApiRequest -> ApiResponse contract. create_middleware_stack applies them in
a fixed order, outermost first: error trapping, CORS, method check,
authentication, body validation.
"""
import logging
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Optional, Sequence
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.response import Envelope
from fluxlora.api.validation import Validator
from fluxlora.auth.security import TokenService
from fluxlora.exceptions import AppError, AuthenticationError

logger = logging.getLogger(__name__)

Middleware = Callable[[Handler], Handler]


@dataclass
class MiddlewareOptions:
    cors: bool = True
    require_auth: bool = False
    validate_body: Optional[Validator] = None
    methods: Optional[Sequence[str]] = None


def with_error_handling(envelope: Envelope) -> Middleware:
    """Convert anything escaping the handler into a classified error response"""
    def middleware(handler: Handler) -> Handler:
        def wrapped(request: ApiRequest) -> ApiResponse:
            try:
                return handler(request)
            except AppError as e:
                if e.status_code >= 500:
                    logger.error(f"{request.method} {request.path} failed: {e.message}")
                    return envelope.internal_error()
                logger.info(f"{request.method} {request.path} -> {e.status_code} {e.code}: {e.message}")
                return envelope.error(e.message, e.status_code, e.code, e.public_details)
            except Exception:
                logger.exception(f"Unhandled error in {request.method} {request.path}")
                return envelope.internal_error()
        return wrapped
    return middleware


def with_cors(envelope: Envelope) -> Middleware:
    """Answer preflights directly and stamp CORS headers on every other response"""
    def middleware(handler: Handler) -> Handler:
        def wrapped(request: ApiRequest) -> ApiResponse:
            if request.method == "OPTIONS":
                return envelope.preflight()
            response = handler(request)
            response.headers.update(envelope.cors.headers())
            return response
        return wrapped
    return middleware


def with_allowed_methods(envelope: Envelope, methods: Sequence[str]) -> Middleware:
    """Reject methods the route does not serve with a 405"""
    allowed = {method.upper() for method in methods}

    def middleware(handler: Handler) -> Handler:
        def wrapped(request: ApiRequest) -> ApiResponse:
            if request.method not in allowed:
                return envelope.method_not_allowed()
            return handler(request)
        return wrapped
    return middleware


def with_auth(envelope: Envelope, tokens: TokenService) -> Middleware:
    """Require a valid bearer token and attach the caller identity"""
    def middleware(handler: Handler) -> Handler:
        def wrapped(request: ApiRequest) -> ApiResponse:
            auth_header = request.header("Authorization")
            if not auth_header or not auth_header.startswith("Bearer "):
                return envelope.unauthorized("Missing or invalid authorization header")
            try:
                request.identity = tokens.verify(auth_header[len("Bearer "):].strip())
            except AuthenticationError as e:
                return envelope.unauthorized(e.message)
            return handler(request)
        return wrapped
    return middleware


def with_body_validation(envelope: Envelope, validator: Validator) -> Middleware:
    """Parse the JSON body and reject it before the handler runs if invalid"""
    def middleware(handler: Handler) -> Handler:
        def wrapped(request: ApiRequest) -> ApiResponse:
            try:
                body = request.json()
            except AppError:
                return envelope.error("Invalid request body", 400, "INVALID_BODY")
            result = validator(body)
            if not result.is_valid:
                return envelope.error("Request validation failed", 400, "VALIDATION_ERROR", result.errors)
            return handler(request)
        return wrapped
    return middleware


def compose(*middlewares: Middleware) -> Middleware:
    """compose(a, b, c)(h) == a(b(c(h)))"""
    def apply(handler: Handler) -> Handler:
        return reduce(lambda acc, middleware: middleware(acc), reversed(middlewares), handler)
    return apply


def create_middleware_stack(
    envelope: Envelope,
    tokens: TokenService,
    options: Optional[MiddlewareOptions] = None,
) -> Middleware:
    """Build the pipeline declared by options around a handler"""
    options = options or MiddlewareOptions()
    middlewares = [with_error_handling(envelope)]
    if options.cors:
        middlewares.append(with_cors(envelope))
    if options.methods:
        middlewares.append(with_allowed_methods(envelope, options.methods))
    if options.require_auth:
        middlewares.append(with_auth(envelope, tokens))
    if options.validate_body is not None:
        middlewares.append(with_body_validation(envelope, options.validate_body))
    return compose(*middlewares)
