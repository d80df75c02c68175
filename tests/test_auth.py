"""
Tests for bearer token creation and verification.

Run with:
    pytest tests/test_auth.py -v
"""
import pytest
from datetime import timedelta

from fastapi import HTTPException

from services.auth import create_access_token, create_jwt_token, decode_jwt
from tests.conftest import auth_headers


class TestTokens:
    def test_round_trip(self):
        payload = decode_jwt(create_access_token(42))

        assert payload["person_id"] == 42
        assert "exp" in payload

    def test_expired_token(self):
        token = create_access_token(42, expires_delta=timedelta(seconds=-5))

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_token_without_person_is_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(create_jwt_token({"sub": "someone"}))

        assert exc_info.value.status_code == 401

    def test_garbage_token_is_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_jwt("abc.def.ghi")

        assert exc_info.value.detail == "Could not validate credentials"


class TestTokenOverApi:
    def test_expired_token_is_rejected(self, client, team):
        token = create_access_token(team["employee"].person.id, expires_delta=timedelta(seconds=-5))

        response = client.get(
            f"/organizations/{team['company'].id}/observations",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["errors"] == ["Token has expired"]

    def test_token_for_deleted_person(self, client, team):
        token = create_access_token(987654)

        response = client.get(
            f"/organizations/{team['company'].id}/observations",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["errors"] == ["Person not found for token"]

    def test_valid_token(self, client, team):
        response = client.get(
            f"/organizations/{team['company'].id}/observations",
            headers=auth_headers(team["employee"].person),
        )

        assert response.status_code == 200
