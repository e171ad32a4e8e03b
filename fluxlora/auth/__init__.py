from .security import Identity, TokenService, PasswordHasher
from .secrets import SecretBox, generate_key

__all__ = [
    "Identity",
    "TokenService",
    "PasswordHasher",
    "SecretBox",
    "generate_key"
]
