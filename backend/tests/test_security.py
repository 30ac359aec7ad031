"""Tests for password hashing and JWT helpers."""

from datetime import timedelta

import jwt

from auction_app.core.config import settings
from auction_app.core.security import (
    AVATAR_URL_TEMPLATE,
    create_access_token,
    decode_access_token,
    get_password_hash,
    random_avatar_url,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_verifies(self):
        password_hash = get_password_hash("correct horse")
        assert password_hash != "correct horse"
        assert verify_password("correct horse", password_hash) is True

    def test_wrong_password(self):
        assert verify_password("wrong", get_password_hash("correct horse")) is False

    def test_malformed_hash(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestAccessToken:
    def test_round_trip_claims(self):
        token = create_access_token({"sub": "user-1", "is_admin": True})
        payload = decode_access_token(token)
        assert payload["sub"] == "user-1"
        assert payload["is_admin"] is True
        assert payload["exp"] > payload["iat"]

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_foreign_signature_rejected(self):
        token = jwt.encode(
            {"sub": "user-1"},
            "another-secret-key-of-sufficient-length",
            algorithm=settings.JWT_ALGORITHM,
        )
        assert decode_access_token(token) is None

    def test_garbage_rejected(self):
        assert decode_access_token("not.a.token") is None


def test_random_avatar_url_in_range():
    for _ in range(50):
        url = random_avatar_url()
        number = int(url.rsplit("/", 1)[1])
        assert url == AVATAR_URL_TEMPLATE.format(number)
        assert 1 <= number <= 100
