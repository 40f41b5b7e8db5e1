"""Provider credential verification against mocked HTTP endpoints."""

from __future__ import annotations

import pytest
import requests
import responses
from juniorhub.infra.federation import build_identity_verifiers, build_provider_configs
from juniorhub.infra.federation.facebook import GRAPH_ME_URL, FacebookAccessTokenVerifier
from juniorhub.infra.federation.google import TOKENINFO_URL, GoogleIdTokenVerifier
from juniorhub.services._shared.errors import FederationUnavailableError, InvalidCredentialError

GOOGLE_PROFILE = {
    "aud": "client-1",
    "sub": "g-123",
    "email": "ana@example.com",
    "email_verified": "true",
    "name": "Ana Dev",
    "picture": "https://img.example.com/ana.png",
}


class TestGoogleIdTokenVerifier:
    @responses.activate
    def test_valid_token_yields_profile(self):
        responses.add(responses.GET, TOKENINFO_URL, json=GOOGLE_PROFILE, status=200)

        profile = GoogleIdTokenVerifier("client-1").verify("id-token")

        assert profile.provider == "google"
        assert profile.subject == "g-123"
        assert profile.email == "ana@example.com"
        assert profile.name == "Ana Dev"
        assert profile.avatar_url == "https://img.example.com/ana.png"
        assert responses.calls[0].request.params == {"id_token": "id-token"}

    @responses.activate
    def test_wrong_audience_is_rejected(self):
        responses.add(responses.GET, TOKENINFO_URL, json=GOOGLE_PROFILE, status=200)

        with pytest.raises(InvalidCredentialError):
            GoogleIdTokenVerifier("another-client").verify("id-token")

    @responses.activate
    def test_unverified_email_is_rejected(self):
        responses.add(
            responses.GET, TOKENINFO_URL, json={**GOOGLE_PROFILE, "email_verified": "false"}
        )

        with pytest.raises(InvalidCredentialError):
            GoogleIdTokenVerifier("client-1").verify("id-token")

    @responses.activate
    def test_provider_rejection_is_invalid_credential(self):
        responses.add(responses.GET, TOKENINFO_URL, json={"error": "invalid_token"}, status=400)

        with pytest.raises(InvalidCredentialError):
            GoogleIdTokenVerifier("client-1").verify("bad")

    @responses.activate
    def test_provider_outage_is_unavailable(self):
        responses.add(responses.GET, TOKENINFO_URL, status=503)

        with pytest.raises(FederationUnavailableError):
            GoogleIdTokenVerifier("client-1").verify("id-token")

    @responses.activate
    def test_timeout_is_unavailable(self):
        responses.add(responses.GET, TOKENINFO_URL, body=requests.Timeout("slow"))

        with pytest.raises(FederationUnavailableError):
            GoogleIdTokenVerifier("client-1", timeout=0.1).verify("id-token")

    @responses.activate
    def test_missing_name_falls_back_to_email_local_part(self):
        responses.add(responses.GET, TOKENINFO_URL, json={**GOOGLE_PROFILE, "name": ""})

        assert GoogleIdTokenVerifier("client-1").verify("t").name == "ana"


class TestFacebookAccessTokenVerifier:
    @responses.activate
    def test_valid_token_yields_profile(self):
        responses.add(
            responses.GET,
            GRAPH_ME_URL,
            json={
                "id": "fb-9",
                "name": "Bo Company",
                "email": "bo@example.com",
                "picture": {"data": {"url": "https://img.example.com/bo.png"}},
            },
        )

        profile = FacebookAccessTokenVerifier().verify("fb-token")

        assert profile.provider == "facebook"
        assert profile.subject == "fb-9"
        assert profile.avatar_url == "https://img.example.com/bo.png"
        assert responses.calls[0].request.params["access_token"] == "fb-token"

    @responses.activate
    def test_withheld_email_is_rejected(self):
        responses.add(responses.GET, GRAPH_ME_URL, json={"id": "fb-9", "name": "Bo"})

        with pytest.raises(InvalidCredentialError):
            FacebookAccessTokenVerifier().verify("fb-token")

    @responses.activate
    def test_graph_error_is_invalid_credential(self):
        responses.add(responses.GET, GRAPH_ME_URL, json={"error": {"code": 190}}, status=401)

        with pytest.raises(InvalidCredentialError):
            FacebookAccessTokenVerifier().verify("expired")


def test_catalog_only_lists_configured_providers():
    config = {
        "GOOGLE_CLIENT_ID": "g",
        "GOOGLE_CALLBACK_URL": "http://cb/google",
        "FACEBOOK_APP_ID": "",
        "FACEBOOK_CALLBACK_URL": "http://cb/fb",
    }

    assert set(build_provider_configs(config)) == {"google"}
    assert set(build_identity_verifiers(config)) == {"google"}


def test_google_authorization_url_carries_state_and_nonce():
    cfg = build_provider_configs(
        {"GOOGLE_CLIENT_ID": "g", "GOOGLE_CALLBACK_URL": "http://cb/google"}
    )["google"]

    url = cfg.authorization_url("st4te")

    assert url.startswith("https://accounts.google.com/")
    assert "state=st4te" in url
    assert "nonce=st4te" in url
    assert "response_type=id_token" in url
