from jose import jwt

from app.core.config import settings
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from app.models.user import User


def _user(**overrides) -> User:
    data = {
        "id": 7,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "token_version": 3,
    }
    data.update(overrides)
    return User(**data)


def test_hash_and_verify_password():
    hashed = hash_password("Secret123!")
    assert hashed != "Secret123!"
    assert hashed.startswith("$2")
    assert verify_password("Secret123!", hashed)
    assert not verify_password("secret123!", hashed)


def test_access_token_round_trip_carries_identity_and_version():
    claims = decode_access_token(create_access_token(_user()))
    assert claims is not None
    assert claims.user_id == 7
    assert claims.email == "ada@example.com"
    assert claims.first_name == "Ada"
    assert claims.last_name == "Lovelace"
    assert claims.token_version == 3


def test_decode_rejects_garbage_and_foreign_signature():
    assert decode_access_token("not-a-jwt") is None
    forged = jwt.encode({"sub": "7", "tv": 0, "type": "access"}, "other-secret", algorithm="HS256")
    assert decode_access_token(forged) is None


def test_decode_rejects_wrong_token_type():
    token = jwt.encode(
        {"sub": "7", "tv": 0, "type": "refresh"}, settings.secret_key, algorithm=settings.algorithm
    )
    assert decode_access_token(token) is None


def test_decode_rejects_token_without_version():
    token = jwt.encode({"sub": "7", "type": "access"}, settings.secret_key, algorithm=settings.algorithm)
    assert decode_access_token(token) is None


def test_decode_rejects_expired_token(monkeypatch):
    monkeypatch.setattr(settings, "access_token_expire_minutes", -1)
    assert decode_access_token(create_access_token(_user())) is None
