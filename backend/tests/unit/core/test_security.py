"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, admin token check
"""
import pytest
from datetime import timedelta
from jose import jwt

from hivecommunity.core.config import settings
from hivecommunity.core.exceptions import AuthenticationError
from hivecommunity.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    verify_admin_token,
    verify_password,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        password = "Ab3!xyzQ9#"
        hashed = get_password_hash(password)

        assert hashed != password
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Bcrypt salts every hash"""
        password = "Ab3!xyzQ9#"
        assert get_password_hash(password) != get_password_hash(password)

    def test_verify_password_correct(self):
        password = "Ab3!xyzQ9#"
        assert verify_password(password, get_password_hash(password)) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("Ab3!xyzQ9#")
        assert verify_password("wrong-secret", hashed) is False

    def test_verify_password_empty_hash(self):
        assert verify_password("anything", "") is False

    def test_verify_password_malformed_hash(self):
        """A plaintext value left in storage never verifies"""
        assert verify_password("Ab3!xyzQ9#", "Ab3!xyzQ9#") is False

    def test_hash_long_password_truncated(self):
        # Bcrypt has 72 byte limit
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True


class TestAccessTokens:
    """Test JWT creation and decoding"""

    def test_round_trip_claims(self):
        token = create_access_token({"sub": "hive-1", "user_type": "hive"})
        payload = decode_token(token)

        assert payload["sub"] == "hive-1"
        assert payload["user_type"] == "hive"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "hive-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)
        assert exc_info.value.code == "INVALID_TOKEN"

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": "x", "type": "access"}, "other-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(AuthenticationError):
            decode_token(token)

    def test_non_access_token_rejected(self):
        token = jwt.encode({"sub": "x", "type": "refresh"}, settings.JWT_SECRET_KEY,
                           algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(AuthenticationError):
            decode_token(token)


class TestAdminToken:
    """Test the X-Admin-Token comparison"""

    def test_matching_token(self):
        assert verify_admin_token(settings.ADMIN_API_TOKEN) is True

    def test_wrong_token(self):
        assert verify_admin_token("not-the-token") is False

    def test_missing_token(self):
        assert verify_admin_token(None) is False
        assert verify_admin_token("") is False
