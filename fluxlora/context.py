"""
Service wiring: one AppContext holds every configured collaborator a handler needs
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from fluxlora.api.middleware import Middleware, MiddlewareOptions, create_middleware_stack
from fluxlora.api.response import CorsPolicy, Envelope
from fluxlora.auth.secrets import SecretBox
from fluxlora.auth.security import PasswordHasher, TokenService
from fluxlora.config.settings import Settings
from fluxlora.database.connection import create_resource
from fluxlora.database.records import RecordStore
from fluxlora.storage.s3_client import S3Client


@dataclass
class AppContext:
    settings: Settings
    tokens: TokenService
    passwords: PasswordHasher
    secrets: SecretBox
    store: RecordStore
    storage: S3Client
    envelope: Envelope

    def middleware(self, **options) -> Middleware:
        """Shorthand for create_middleware_stack with this context's collaborators"""
        return create_middleware_stack(self.envelope, self.tokens, MiddlewareOptions(**options))


def build_context(settings: Settings, dynamodb_resource: Optional[object] = None) -> AppContext:
    """Wire the services from settings; boto3 clients are created but not contacted"""
    resource = dynamodb_resource or create_resource(settings)
    return AppContext(
        settings=settings,
        tokens=TokenService(
            secret=settings.JWT_SECRET or "",
            algorithm=settings.JWT_ALGORITHM,
            expires_in=timedelta(days=settings.TOKEN_EXPIRE_DAYS),
        ),
        passwords=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        secrets=SecretBox(settings.SECRETS_ENCRYPTION_KEY),
        store=RecordStore(resource, max_page_limit=settings.MAX_PAGE_LIMIT),
        storage=S3Client(settings),
        envelope=Envelope(CorsPolicy.from_settings(settings)),
    )
