"""End-to-end tests for /api/v1/auth."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from juniorhub.infra import stores as stores_module
from redis.exceptions import ConnectionError as RedisConnectionError
from tests.factories.account import AccountFactory

BASE = "/api/v1/auth"

JUNIOR = {
    "email": "june@example.com",
    "password": "password123",
    "name": "June",
    "role": "junior",
    "experience_level": "beginner",
    "skills": ["python"],
}


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client, **overrides):
    return client.post(f"{BASE}/register", json={**JUNIOR, **overrides})


class TestRegister:
    def test_register_with_role_signs_in(self, client):
        resp = _register(client)

        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["status"] == "authenticated"
        assert data["account"]["role"] == "junior"
        assert data["account"]["skills"] == ["python"]
        assert "password" not in data["account"]
        assert data["tokens"]["token_type"] == "Bearer"

        me = client.get(f"{BASE}/me", headers=_bearer(data["tokens"]["access_token"]))
        assert me.status_code == 200
        assert me.get_json()["data"]["email"] == "june@example.com"

    def test_register_without_role_then_complete(self, client):
        resp = _register(client, role=None, experience_level=None)

        assert resp.status_code == 202
        data = resp.get_json()["data"]
        assert data["status"] == "registration_required"
        ticket = data["ticket"]["ticket"]
        assert data["requirements"]["company"]["required"] == ["company_name", "industry"]

        peek = client.get(f"{BASE}/tickets/{ticket}")
        assert peek.status_code == 200
        assert peek.get_json()["data"]["email"] == "june@example.com"

        done = client.post(
            f"{BASE}/complete-registration",
            json={"ticket": ticket, "role": "company", "company_name": "Acme", "industry": "it"},
        )
        assert done.status_code == 200
        assert done.get_json()["data"]["account"]["role"] == "company"

        assert client.get(f"{BASE}/tickets/{ticket}").status_code == 404
        again = client.post(
            f"{BASE}/complete-registration",
            json={"ticket": ticket, "role": "company", "company_name": "Acme", "industry": "it"},
        )
        assert again.status_code == 400
        assert again.get_json()["code"] == "invalid_ticket"

    def test_missing_role_fields(self, client):
        resp = _register(client, experience_level=None)

        assert resp.status_code == 422
        body = resp.get_json()
        assert body["code"] == "missing_role_fields"
        assert body["details"]["fields"] == ["experience_level"]

    def test_unknown_experience_level_is_a_field_error(self, client):
        resp = _register(client, experience_level="guru")

        assert resp.status_code == 422
        body = resp.get_json()
        assert body["code"] == "validation_error"
        assert "experience_level" in body["details"]["errors"]

    def test_experience_level_is_case_insensitive(self, client):
        resp = _register(client, experience_level=" Advanced ")

        assert resp.status_code == 201
        assert resp.get_json()["data"]["account"]["experience_level"] == "advanced"

    def test_admin_role_cannot_be_self_assigned(self, client):
        resp = _register(client, role="admin")

        assert resp.status_code == 422
        assert resp.get_json()["code"] == "invalid_role"

    @pytest.mark.parametrize("override", [{"email": "nope"}, {"password": "short"}, {"name": ""}])
    def test_payload_validation(self, client, override):
        resp = _register(client, **override)

        assert resp.status_code == 422
        assert resp.mimetype == "application/problem+json"

    def test_duplicate_email(self, client):
        AccountFactory(email="june@example.com")

        resp = _register(client)

        assert resp.status_code == 409


class TestLogin:
    def test_login_success(self, client):
        AccountFactory(email="login@example.com", password="password123")

        resp = client.post(f"{BASE}/login", json={"email": "login@example.com", "password": "password123"})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["tokens"]["access_token"]

    def test_login_failure(self, client):
        AccountFactory(email="login@example.com", password="password123")

        resp = client.post(f"{BASE}/login", json={"email": "login@example.com", "password": "bad"})

        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_credentials"

    def test_login_unassigned_account_returns_ticket(self, client):
        AccountFactory(email="half@example.com", unassigned=True, password="password123")

        resp = client.post(f"{BASE}/login", json={"email": "half@example.com", "password": "password123"})

        assert resp.status_code == 202
        assert resp.get_json()["data"]["ticket"]["ticket"]

    def test_storage_outage_is_503(self, client, app, stores):
        broken = MagicMock()
        broken.register.side_effect = RedisConnectionError("down")
        stores_module.init_app(
            app,
            stores_module.Stores(
                refresh=broken,
                denylist=stores.denylist,
                ephemeral=stores.ephemeral,
                publisher=stores.publisher,
            ),
        )
        AccountFactory(email="login@example.com", password="password123")

        resp = client.post(f"{BASE}/login", json={"email": "login@example.com", "password": "password123"})

        assert resp.status_code == 503


class TestSessionLifecycle:
    @pytest.fixture()
    def pair(self, client):
        AccountFactory(email="life@example.com", password="password123")
        resp = client.post(f"{BASE}/login", json={"email": "life@example.com", "password": "password123"})
        return resp.get_json()["data"]["tokens"]

    def test_refresh_rotates(self, client, pair):
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]})

        assert resp.status_code == 200
        new = resp.get_json()["data"]
        assert new["refresh_token"] != pair["refresh_token"]
        assert client.get(f"{BASE}/me", headers=_bearer(new["access_token"])).status_code == 200

    def test_reuse_kills_the_family(self, client, pair):
        new = client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]}).get_json()["data"]

        reused = client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]})

        assert reused.status_code == 401
        assert reused.get_json()["code"] == "token_reused"
        assert client.get(f"{BASE}/me", headers=_bearer(new["access_token"])).status_code == 401
        assert client.post(f"{BASE}/refresh", json={"refresh_token": new["refresh_token"]}).status_code == 401

    def test_logout(self, client, pair):
        first = client.post(f"{BASE}/logout", json={"refresh_token": pair["refresh_token"]})
        second = client.post(f"{BASE}/logout", json={"refresh_token": pair["refresh_token"]})

        assert first.get_json()["data"] == {"revoked": True}
        assert second.get_json()["data"] == {"revoked": False}
        assert client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]}).status_code == 401

    def test_refresh_with_garbage(self, client):
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": "garbage"})

        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_credentials"


class TestMe:
    def test_requires_token(self, client):
        resp = client.get(f"{BASE}/me")

        assert resp.status_code == 401

    def test_rejects_token_outside_a_family(self, client, forged_access_token):
        account = AccountFactory()

        resp = client.get(f"{BASE}/me", headers=_bearer(forged_access_token(account.id)))

        assert resp.status_code == 401

    def test_with_header_fixture(self, client, auth_header):
        account = AccountFactory(company=True)

        resp = client.get(f"{BASE}/me", headers=auth_header(account.id, "company"))

        assert resp.status_code == 200
        assert resp.get_json()["data"]["company_name"] == account.company_name


def test_unknown_ticket_is_404(client):
    assert client.get(f"{BASE}/tickets/missing").status_code == 404
