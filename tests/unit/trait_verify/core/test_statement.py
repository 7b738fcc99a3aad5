"""Tests for the statement builder."""

from datetime import datetime, timedelta, timezone

import pytest

from trait_verify.config import Settings
from trait_verify.core.exceptions import StatementError, TraitGrammarError, UnsupportedOperatorError
from trait_verify.core.statement import (
    build_resources,
    build_statement,
    format_timestamp,
    generate_nonce,
)

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
ISSUED = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(app_url="https://app.example.com")


def resource_lines(message):
    lines = message.split("\n")
    return [line[2:] for line in lines[lines.index("Resources:") + 1:]]


def test_resource_order():
    resources = build_resources(
        "x",
        {"verified": "true", "followers": "gte:1000"},
        "claim_airdrop",
        "abc-123",
    )
    assert resources == (
        "urn:verify:provider:x",
        "urn:verify:provider:x:verified:eq:true",
        "urn:verify:provider:x:followers:gte:1000",
        "urn:verify:action:claim_airdrop",
        "urn:verify:verificationid:abc-123",
    )


def test_no_provider_means_no_trait_lines():
    assert build_resources(None, {"verified": "true"}, "claim") == ("urn:verify:action:claim",)


def test_empty_resources():
    assert build_resources() == ()


def test_message_layout(settings):
    built = build_statement(
        ADDRESS,
        "x",
        {"verified": True},
        "claim_airdrop",
        settings=settings,
        issued_at=ISSUED,
    )
    lines = built.message.split("\n")

    assert lines[0] == "app.example.com wants you to sign in with your Ethereum account:"
    assert lines[1] == ADDRESS
    assert lines[2] == ""
    assert lines[3] == "Claim airdrop with X Blue Checkmark"
    assert lines[4] == ""
    assert lines[5].startswith("URI: https://app.example.com")
    assert lines[6] == "Version: 1"
    assert lines[7] == "Chain ID: 8453"
    assert lines[8] == f"Nonce: {built.nonce}"
    assert lines[9] == "Issued At: 2025-01-01T00:00:00.000Z"
    assert lines[10] == "Expiration Time: 2025-01-01T06:00:00.000Z"
    assert lines[11] == "Resources:"
    assert resource_lines(built.message) == [
        "urn:verify:provider:x",
        "urn:verify:provider:x:verified:eq:true",
        "urn:verify:action:claim_airdrop",
    ]
    assert built.issued_at == "2025-01-01T00:00:00.000Z"
    assert built.expiration_time == "2025-01-01T06:00:00.000Z"


def test_overrides(settings):
    built = build_statement(
        ADDRESS,
        domain="other.example",
        uri="https://other.example/login",
        chain_id=1,
        statement="Sign in",
        issued_at=ISSUED,
        expires_in=timedelta(minutes=10),
        settings=settings,
    )
    assert built.message.startswith("other.example wants you to sign in")
    assert "URI: https://other.example/login" in built.message
    assert "Chain ID: 1\n" in built.message
    assert "\nSign in\n" in built.message
    assert built.expiration_time == "2025-01-01T00:10:00.000Z"
    assert "Resources:" not in built.message


def test_deterministic_apart_from_nonce(settings):
    """Same inputs differ only in the nonce."""
    args = (ADDRESS, "coinbase", {"coinbase_one_active": "true"}, "claim", "id-1")
    first = build_statement(*args, settings=settings, issued_at=ISSUED)
    second = build_statement(*args, settings=settings, issued_at=ISSUED)

    assert first.nonce != second.nonce
    assert first.message.replace(first.nonce, "") == second.message.replace(second.nonce, "")
    assert first.resources == second.resources


def test_always_sets_expiration(settings):
    built = build_statement(ADDRESS, settings=settings)
    assert "Expiration Time: " in built.message
    assert "Issued At: " in built.message


@pytest.mark.parametrize(
    "address",
    ["", "   ", "0xabc\n- urn:verify:action:evil", ADDRESS.lower(), "not-an-address"],
)
def test_invalid_address(settings, address):
    with pytest.raises(StatementError):
        build_statement(address, settings=settings)


def test_multiline_statement_rejected(settings):
    with pytest.raises(StatementError):
        build_statement(ADDRESS, statement="one\ntwo", settings=settings)


def test_unencodable_trait_name(settings):
    with pytest.raises(TraitGrammarError):
        build_statement(ADDRESS, "x", {"bad name": "true"}, settings=settings)


@pytest.mark.parametrize("traits", [{"city": "New York"}, {"city": "in:Paris,New York"}, {"bio": "a b"}])
def test_value_that_is_not_uri_text_rejected(settings, traits):
    with pytest.raises(TraitGrammarError):
        build_statement(ADDRESS, "x", traits, settings=settings)


def test_percent_encoded_value_accepted(settings):
    built = build_statement(ADDRESS, "x", {"city": "New%20York"}, settings=settings)
    assert "- urn:verify:provider:x:city:eq:New%20York" in built.message


def test_permissive_encoding_by_default(settings):
    built = build_statement(ADDRESS, "x", {"country": "gt:US"}, settings=settings)
    assert "- urn:verify:provider:x:country:gt:US" in built.message


def test_strict_preflight(settings):
    with pytest.raises(UnsupportedOperatorError):
        build_statement(ADDRESS, "x", {"verified": "gt:true"}, strict=True, settings=settings)


def test_nonce():
    nonce = generate_nonce()
    assert len(nonce) == 17
    assert nonce.isalnum()
    assert generate_nonce() != nonce


def test_format_timestamp():
    assert format_timestamp(datetime(2025, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)) == "2025-03-04T05:06:07.891Z"
    # naive datetimes are taken as UTC
    assert format_timestamp(datetime(2025, 3, 4)) == "2025-03-04T00:00:00.000Z"
    offset = timezone(timedelta(hours=2))
    assert format_timestamp(datetime(2025, 3, 4, 2, tzinfo=offset)) == "2025-03-04T00:00:00.000Z"


def test_to_dict(settings):
    built = build_statement(ADDRESS, "x", {"verified": "true"}, settings=settings)
    data = built.to_dict()
    assert data["nonce"] == built.nonce
    assert data["resources"] == ["urn:verify:provider:x", "urn:verify:provider:x:verified:eq:true"]
