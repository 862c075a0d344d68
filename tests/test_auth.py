"""Tests for owner tokens and Bearer-token owner resolution."""

import pytest

from mediafolders.core.config import settings
from mediafolders.core.token_factory import create_token, decode_token

SECRET = "test-secret"


class TestTokenFactory:

    def test_round_trip(self):
        token = create_token(7, SECRET)
        payload = decode_token(token, SECRET)
        assert payload is not None
        assert payload.sub == "7"

    def test_wrong_secret(self):
        token = create_token(7, SECRET)
        assert decode_token(token, "other-secret") is None

    def test_tampered_payload(self):
        header, _, signature = create_token(7, SECRET).split(".")
        forged = create_token(8, SECRET).split(".")[1]
        assert decode_token(f"{header}.{forged}.{signature}", SECRET) is None

    def test_expired(self):
        token = create_token(7, SECRET, expires_hours=-1)
        assert decode_token(token, SECRET) is None

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "!!!.???.***"])
    def test_malformed(self, token):
        assert decode_token(token, SECRET) is None

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            create_token(7, SECRET, algorithm="RS256")
        assert decode_token(create_token(7, SECRET), SECRET, algorithm="RS256") is None


class TestBearerAuth:

    @pytest.fixture(autouse=True)
    def _enable_auth(self, monkeypatch):
        monkeypatch.setattr(settings, "auth_enabled", True)
        monkeypatch.setattr(settings, "jwt_secret_key", SECRET)

    def test_valid_token(self, client, owner):
        token = create_token(owner.id, SECRET)
        response = client.get("/api/folders", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    def test_missing_token(self, client, owner):
        response = client.get("/api/folders", headers={"X-Owner-Id": str(owner.id)})
        assert response.status_code == 401

    def test_invalid_token(self, client, owner):
        response = client.get("/api/folders", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_token_for_unknown_owner(self, client, owner):
        token = create_token(999, SECRET)
        response = client.get("/api/folders", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
