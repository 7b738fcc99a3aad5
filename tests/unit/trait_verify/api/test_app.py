"""Tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient

from trait_verify.api.main import create_app
from trait_verify.config import Settings
from trait_verify.core.exceptions import VerificationAuthorityError
from trait_verify.core.statement import build_statement
from trait_verify.services.authority import TRAITS_NOT_SATISFIED, AuthorityResponse, classify_response

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class FakeAuthority:
    def __init__(self, status=200, body=None, error=None):
        self.status = status
        self.body = {"token": "tok"} if body is None else body
        self.error = error
        self.closed = False
        self.calls = []

    async def submit(self, message, signature):
        self.calls.append((message, signature))
        if self.error is not None:
            raise self.error
        return AuthorityResponse(outcome=classify_response(self.status, self.body), status=self.status, body=self.body)

    async def close(self):
        self.closed = True


@pytest.fixture
def settings():
    return Settings(app_url="https://app.example.com")


@pytest.fixture
def authority():
    return FakeAuthority()


@pytest.fixture
def client(settings, authority):
    return TestClient(create_app(settings=settings, authority=authority))


def signed_statement(settings, traits, provider="x", action="claim_demo_x_airdrop"):
    return build_statement(ADDRESS, provider, traits, action, settings=settings).message


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["authority_configured"] is True
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_health_without_authority(settings):
    client = TestClient(create_app(settings=settings))
    assert client.get("/health").json()["authority_configured"] is False


def test_list_scenarios(client):
    response = client.get("/api/v1/scenarios")
    assert response.status_code == 200
    ids = [scenario["id"] for scenario in response.json()]
    assert "x-followers-100" in ids
    assert "tiktok-creator" in ids


def test_build_statement(client):
    response = client.post(
        "/api/v1/scenarios/x-followers-100/statement",
        json={"address": ADDRESS, "verification_id": "abc-123"},
    )
    assert response.status_code == 200
    data = response.json()
    message = data["message"]
    assert message.startswith("app.example.com wants you to sign in with your Ethereum account:")
    assert "- urn:verify:provider:x:followers:gt:100" in message
    assert "- urn:verify:action:claim_demo_x_airdrop" in message
    assert "- urn:verify:verificationid:abc-123" in message
    assert f"Nonce: {data['nonce']}" in message


def test_build_statement_bad_address(client):
    response = client.post(
        "/api/v1/scenarios/x-followers-100/statement",
        json={"address": "0xabc\n- urn:verify:action:evil"},
    )
    assert response.status_code == 400


def test_unknown_scenario(client):
    response = client.post("/api/v1/scenarios/nope/statement", json={"address": ADDRESS})
    assert response.status_code == 404


def test_verify_forwards_valid_statement(client, settings, authority):
    message = signed_statement(settings, {"followers": "gt:500"})
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": message, "signature": "0xsig"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["accepted"] is True
    assert data["authority"]["body"]["token"] == "tok"
    assert authority.calls == [(message, "0xsig")]


def test_verify_rejects_weaker_statement(client, settings, authority):
    message = signed_statement(settings, {"followers": "gt:1"})
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": message, "signature": "0xsig"},
    )
    assert response.status_code == 400
    data = response.json()
    assert data["valid"] is False
    assert data["mismatches"][0]["reason"] == "not_strict_enough"
    assert authority.calls == []


@pytest.mark.parametrize(
    "status, body, outcome",
    [
        (404, {}, "not_verified"),
        (400, {"message": TRAITS_NOT_SATISFIED}, "requirements_unmet"),
    ],
)
def test_verify_passes_authority_status_through(settings, status, body, outcome):
    authority = FakeAuthority(status=status, body=body)
    client = TestClient(create_app(settings=settings, authority=authority))
    message = signed_statement(settings, {"followers": "gt:100"})
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": message, "signature": "0xsig"},
    )
    assert response.status_code == status
    data = response.json()
    assert data["accepted"] is False
    assert data["validation"]["valid"] is True
    assert data["authority"]["outcome"] == outcome


def test_verify_authority_failure(settings):
    authority = FakeAuthority(error=VerificationAuthorityError("unreachable"))
    client = TestClient(create_app(settings=settings, authority=authority))
    message = signed_statement(settings, {"followers": "gt:100"})
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": message, "signature": "0xsig"},
    )
    assert response.status_code == 502


def test_verify_without_authority(settings):
    client = TestClient(create_app(settings=settings))
    message = signed_statement(settings, {"followers": "gt:100"})
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": message, "signature": "0xsig"},
    )
    assert response.status_code == 503


def test_verify_blank_statement(client):
    response = client.post(
        "/api/v1/scenarios/x-followers-100/verify",
        json={"message": "   ", "signature": "0xsig"},
    )
    assert response.status_code == 400


def test_build_statement_unchecksummed_address(client):
    response = client.post(
        "/api/v1/scenarios/x-followers-100/statement",
        json={"address": ADDRESS.lower()},
    )
    assert response.status_code == 400


def test_authority_closed_on_shutdown(settings, authority):
    with TestClient(create_app(settings=settings, authority=authority)) as client:
        assert client.get("/health").status_code == 200
        assert authority.closed is False
    assert authority.closed is True
