"""
Tests for session tokens, password hashing and API key encryption
"""
from datetime import timedelta
import pytest
from jose import jwt
from fluxlora.auth import Identity, PasswordHasher, SecretBox, TokenService, generate_key
from fluxlora.exceptions import ConfigurationError, InvalidTokenError


@pytest.fixture
def tokens():
    return TokenService("unit-secret")


@pytest.fixture(scope="module")
def hasher():
    return PasswordHasher(rounds=4)


def test_token_round_trip(tokens):
    identity = Identity(id="user-1", email="alice@example.com")
    assert tokens.verify(tokens.issue(identity)) == identity


def test_token_claims(tokens):
    token = tokens.issue(Identity(id="user-1", email="alice@example.com"))
    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "user-1"
    assert claims["email"] == "alice@example.com"
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())


def test_expired_token_rejected(tokens):
    token = tokens.issue(Identity(id="user-1", email="a@example.com"), expires_in=timedelta(seconds=-10))
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_foreign_signature_rejected(tokens):
    forged = TokenService("other-secret").issue(Identity(id="user-1", email="a@example.com"))
    with pytest.raises(InvalidTokenError):
        tokens.verify(forged)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_malformed_token_rejected(tokens, token):
    with pytest.raises(InvalidTokenError) as exc_info:
        tokens.verify(token)
    assert exc_info.value.message == "Invalid or expired token"


def test_token_without_identity_claims_rejected(tokens):
    token = jwt.encode({"sub": "user-1"}, "unit-secret", algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


@pytest.mark.parametrize("password", ["password123", "correct horse battery staple", "pässwörd!"])
def test_password_hash_verifies(hasher, password):
    digest = hasher.hash(password)
    assert digest != password
    assert hasher.verify(password, digest)
    assert not hasher.verify(password + "x", digest)


def test_password_hash_is_salted(hasher):
    assert hasher.hash("password123") != hasher.hash("password123")


def test_malformed_digest_is_a_mismatch(hasher):
    assert hasher.verify("password123", "not-a-bcrypt-hash") is False
    assert hasher.verify("password123", "") is False


def test_secret_box_round_trip():
    box = SecretBox(generate_key())
    token = box.encrypt("sk-live-abcdef", "user-1:falai")
    assert token.startswith("v1:")
    assert "sk-live-abcdef" not in token
    assert box.decrypt(token, "user-1:falai") == "sk-live-abcdef"


def test_secret_box_uses_fresh_nonce():
    box = SecretBox(generate_key())
    assert box.encrypt("same", "ctx") != box.encrypt("same", "ctx")


def test_secret_box_binds_context():
    box = SecretBox(generate_key())
    token = box.encrypt("sk-live-abcdef", "user-1:falai")
    with pytest.raises(ValueError):
        box.decrypt(token, "user-2:falai")


def test_secret_box_rejects_other_key():
    token = SecretBox(generate_key()).encrypt("secret", "ctx")
    with pytest.raises(ValueError):
        SecretBox(generate_key()).decrypt(token, "ctx")


def test_secret_box_without_key():
    box = SecretBox(None)
    assert not box.configured
    with pytest.raises(ConfigurationError):
        box.encrypt("secret")


@pytest.mark.parametrize("key", ["c2hvcnQ=", "***not base64***"])
def test_secret_box_rejects_bad_keys(key):
    with pytest.raises(ConfigurationError):
        SecretBox(key)
