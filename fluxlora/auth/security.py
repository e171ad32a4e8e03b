"""
Session tokens and password hashing
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fluxlora.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity carried by a bearer token"""
    id: str
    email: str


class TokenService:
    """Issues and verifies signed, time-limited session tokens"""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: timedelta = timedelta(days=7)):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def issue(self, identity: Identity, expires_in: Optional[timedelta] = None) -> str:
        """Create a JWT for the identity with issued-at and expiry claims"""
        now = datetime.now(timezone.utc)
        expire = now + (expires_in if expires_in is not None else self.expires_in)
        to_encode = {
            "sub": identity.id,
            "email": identity.email,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """
        Verify signature and expiry.
        Every failure mode raises the same InvalidTokenError.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Token verification failed: {e.__class__.__name__}")
            raise InvalidTokenError()
        user_id = payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise InvalidTokenError()
        return Identity(id=user_id, email=email)


class PasswordHasher:
    """Salted bcrypt hashing with a configurable cost factor"""

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        if not digest:
            return False
        try:
            return self.context.verify(password, digest)
        except (ValueError, TypeError):
            # malformed digest counts as a mismatch
            logger.warning("Stored password digest could not be parsed")
            return False
