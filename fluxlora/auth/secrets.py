"""
At-rest encryption for third-party API keys (AES-256-GCM)
"""
import base64
import binascii
import os
from typing import Optional
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fluxlora.exceptions import ConfigurationError

NONCE_SIZE = 12
VERSION_PREFIX = "v1:"


class SecretBox:
    """
    Encrypts short secrets with a fresh nonce per value.
    The context string (e.g. "<userId>:<service>") is bound as associated data,
    so a ciphertext copied onto another record or service will not decrypt.
    """

    def __init__(self, key_b64: Optional[str]):
        self._aesgcm = None
        if key_b64:
            try:
                key = base64.b64decode(key_b64)
            except (binascii.Error, ValueError):
                raise ConfigurationError("SECRETS_ENCRYPTION_KEY is not valid base64")
            if len(key) != 32:
                raise ConfigurationError("SECRETS_ENCRYPTION_KEY must decode to 32 bytes")
            self._aesgcm = AESGCM(key)

    @property
    def configured(self) -> bool:
        return self._aesgcm is not None

    def _cipher(self) -> AESGCM:
        if self._aesgcm is None:
            raise ConfigurationError("API key encryption is not configured")
        return self._aesgcm

    def encrypt(self, plaintext: str, context: str = "") -> str:
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._cipher().encrypt(nonce, plaintext.encode("utf-8"), context.encode("utf-8"))
        return VERSION_PREFIX + base64.urlsafe_b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, token: str, context: str = "") -> str:
        if not token.startswith(VERSION_PREFIX):
            raise ValueError("Unsupported ciphertext format")
        raw = base64.urlsafe_b64decode(token[len(VERSION_PREFIX):].encode("ascii"))
        nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = self._cipher().decrypt(nonce, ciphertext, context.encode("utf-8"))
        except InvalidTag:
            raise ValueError("Ciphertext failed authentication")
        return plaintext.decode("utf-8")


def generate_key() -> str:
    """Return a new random base64 key suitable for SECRETS_ENCRYPTION_KEY"""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")
