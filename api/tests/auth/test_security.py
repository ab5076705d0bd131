"""Tests for bearer token verification."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from src.auth.permissions import UserRole
from src.auth.security import (
    create_access_token,
    decode_access_token,
    principal_from_claims,
)
from src.config.settings import get_settings


class TestDecodeAccessToken:
    def test_round_trip(self) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, "ana@example.com", role=UserRole.ADMIN)

        payload = decode_access_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["app_metadata"]["role"] == "admin"

    def test_expired_token(self) -> None:
        token = create_access_token(
            uuid4(), "ana@example.com", expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_signature(self) -> None:
        token = jwt.encode({"sub": str(uuid4())}, "another-secret", algorithm="HS256")

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_missing_subject(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {"email": "ana@example.com"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )

        with pytest.raises(JWTError):
            decode_access_token(token)


class TestPrincipalFromClaims:
    def test_reads_nested_role_and_name(self) -> None:
        user_id = uuid4()
        principal = principal_from_claims(
            {
                "sub": str(user_id),
                "email": "Ana@Example.com",
                "app_metadata": {"role": "instructor"},
                "user_metadata": {"full_name": "Ana Lima"},
            }
        )

        assert principal.id == user_id
        assert principal.email == "ana@example.com"
        assert principal.role == UserRole.INSTRUCTOR
        assert principal.full_name == "Ana Lima"

    def test_missing_role_is_student(self) -> None:
        principal = principal_from_claims({"sub": str(uuid4())})

        assert principal.role == UserRole.STUDENT
        assert principal.full_name is None

    def test_subject_must_be_uuid(self) -> None:
        with pytest.raises(JWTError):
            principal_from_claims({"sub": "not-a-uuid"})
