"""
Unit tests for security utilities.

Tests password hashing, session tokens and magic-link values.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError

from tenantgate.core.security import (
    create_access_token,
    decode_token,
    generate_link_token,
    hash_password,
    verify_password,
)
from tenantgate.models.enums import AssuranceLevel


@pytest.mark.unit
class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        password = "TestPassword123!"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # Bcrypt prefix

    def test_verify_password(self):
        hashed = hash_password("TestPassword123!")

        assert verify_password("TestPassword123!", hashed) is True
        assert verify_password("WrongPassword123!", hashed) is False

    def test_different_hashes_for_same_password(self):
        """Salted: the same password never hashes the same way twice."""
        assert hash_password("TestPassword123!") != hash_password("TestPassword123!")


@pytest.mark.unit
class TestSessionTokens:
    """Test JWT session tokens."""

    def test_create_access_token(self):
        token = create_access_token(subject=42)

        payload = decode_token(token)
        assert payload["sub"] == "42"
        assert payload["type"] == "access"

    def test_base_assurance_by_default(self):
        payload = decode_token(create_access_token(subject=42))

        assert payload["aal"] == "aal1"

    def test_elevated_assurance(self):
        """MFA-verified sessions carry aal2."""
        token = create_access_token(subject=42, assurance_level=AssuranceLevel.ELEVATED)

        assert decode_token(token)["aal"] == "aal2"

    def test_custom_claims(self):
        token = create_access_token(subject={"sub": 7, "aal": "aal2", "email": "a@acme.com"})
        payload = decode_token(token)

        assert payload["sub"] == "7"
        assert payload["aal"] == "aal2"
        assert payload["email"] == "a@acme.com"

    def test_custom_expiration(self):
        token = create_access_token(subject=1, expires_delta=timedelta(minutes=5))
        payload = decode_token(token)

        duration = payload["exp"] - payload["iat"]
        assert 4 * 60 <= duration <= 6 * 60
        assert datetime.fromtimestamp(payload["exp"], tz=timezone.utc) > datetime.now(timezone.utc)

    def test_expired_token_rejected(self):
        token = create_access_token(subject=1, expires_delta=timedelta(seconds=-10))

        with pytest.raises(JWTError):
            decode_token(token)

    def test_decode_invalid_token(self):
        with pytest.raises(JWTError):
            decode_token("invalid.token.here")


@pytest.mark.unit
class TestLinkTokens:
    def test_link_tokens_are_unique(self):
        tokens = {generate_link_token() for _ in range(100)}

        assert len(tokens) == 100

    def test_link_token_fits_column(self):
        assert len(generate_link_token()) <= 64
