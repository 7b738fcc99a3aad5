"""Unit tests for the trait grammar."""

import pytest

from trait_verify.core.exceptions import (
    MalformedResourceLineError,
    TraitGrammarError,
    UnsupportedOperatorError,
)
from trait_verify.core.grammar import (
    Operator,
    action_resource,
    decode_trait,
    encode_comparison,
    encode_trait,
    ensure_well_typed,
    parse_comparison,
    provider_resource,
    trait_resource,
    verification_id_resource,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("gt:100", (Operator.GT, "100")),
        ("gte:1000", (Operator.GTE, "1000")),
        ("lt:5", (Operator.LT, "5")),
        ("lte:5", (Operator.LTE, "5")),
        ("eq:US", (Operator.EQ, "US")),
        ("in:US,CA", (Operator.IN, "US,CA")),
        ("true", (Operator.EQ, "true")),
        ("gtx:100", (Operator.EQ, "gtx:100")),
        ("eq:", (Operator.EQ, "eq:")),
    ],
)
def test_encode_comparison(raw, expected) -> None:
    """Operator prefixes are recognised; anything else defaults to eq."""
    assert encode_comparison(raw) == expected


def test_encode_comparison_renders_python_values() -> None:
    assert encode_comparison(True) == (Operator.EQ, "true")
    assert encode_comparison(False) == (Operator.EQ, "false")
    assert encode_comparison(42) == (Operator.EQ, "42")


def test_encode_trait() -> None:
    assert encode_trait("followers", "gt:100") == "followers:gt:100"
    assert encode_trait("verified", "true") == "verified:eq:true"


def test_resources() -> None:
    assert provider_resource("x") == "urn:verify:provider:x"
    assert trait_resource("x", "followers", "gte:1000") == "urn:verify:provider:x:followers:gte:1000"
    assert action_resource("claim_airdrop") == "urn:verify:action:claim_airdrop"
    assert verification_id_resource("abc-123") == "urn:verify:verificationid:abc-123"


@pytest.mark.parametrize("name", ["", "bad:name", "bad name"])
def test_encode_trait_rejects_unencodable_names(name) -> None:
    with pytest.raises(TraitGrammarError):
        encode_trait(name, "true")


def test_encode_rejects_line_breaks_in_values() -> None:
    """A value must not be able to inject extra resource lines."""
    with pytest.raises(TraitGrammarError):
        encode_trait("verified", "true\n- urn:verify:provider:x:followers:gte:0")


@pytest.mark.parametrize("raw", ["New York", "in:Paris,New York", "café", "a b", "50%"])
def test_encode_rejects_values_that_are_not_uri_text(raw) -> None:
    with pytest.raises(TraitGrammarError):
        encode_trait("city", raw)


def test_encode_accepts_percent_encoded_values() -> None:
    assert encode_trait("city", "New%20York") == "city:eq:New%20York"


def test_action_and_id_must_be_uri_text() -> None:
    with pytest.raises(TraitGrammarError):
        action_resource("claim airdrop")
    with pytest.raises(TraitGrammarError):
        verification_id_resource("abc 123")


def test_encode_is_permissive_about_types() -> None:
    """gt on a string encodes; the comparator judges it later."""
    assert encode_trait("country", "gt:US") == "country:gt:US"
    assert not parse_comparison("country", "gt:US").is_well_typed()


def test_parse_comparison_types() -> None:
    assert parse_comparison("verified", "true").value is True
    assert parse_comparison("verified", "eq:false").value is False
    assert parse_comparison("followers", "gte:1000").value == 1000
    assert parse_comparison("delta", "gt:-5").value == -5
    assert parse_comparison("country", "US").value == "US"
    assert parse_comparison("country", "in:US, CA").value == frozenset({"US", "CA"})


def test_parse_comparison_rejects_empty_set() -> None:
    with pytest.raises(TraitGrammarError):
        parse_comparison("country", "in:,")


def test_raw_is_canonical() -> None:
    assert parse_comparison("verified", "true").raw == "eq:true"
    assert parse_comparison("followers", "gt:100").raw == "gt:100"


@pytest.mark.parametrize(
    "raw, well_typed",
    [
        ("true", True),
        ("US", True),
        ("eq:100", True),
        ("gte:100", True),
        ("gte:true", False),
        ("lt:abc", False),
        ("in:US,CA", True),
        ("in:1,2", True),
    ],
)
def test_is_well_typed(raw, well_typed) -> None:
    assert parse_comparison("trait", raw).is_well_typed() is well_typed


def test_ensure_well_typed() -> None:
    requirement = parse_comparison("followers", "gte:10")
    assert ensure_well_typed(requirement) is requirement
    with pytest.raises(UnsupportedOperatorError):
        ensure_well_typed(parse_comparison("verified", "gt:true"))


def test_decode_trait() -> None:
    requirement = decode_trait("urn:verify:provider:x:followers:gte:1000", "x")
    assert requirement.name == "followers"
    assert requirement.operator is Operator.GTE
    assert requirement.value == 1000
    assert requirement.raw == "gte:1000"


def test_decode_keeps_colons_in_value() -> None:
    requirement = decode_trait("urn:verify:provider:x:handle:eq:a:b:c", "x")
    assert requirement.name == "handle"
    assert requirement.text == "a:b:c"


def test_decode_skips_non_traits() -> None:
    assert decode_trait("urn:verify:provider:x", "x") is None
    assert decode_trait("urn:verify:provider:tiktok:follower_count:gt:1", "x") is None
    assert decode_trait("urn:verify:provider:xy:followers:gt:1", "x") is None
    assert decode_trait("urn:verify:action:claim", "x") is None


@pytest.mark.parametrize(
    "line",
    [
        "urn:verify:provider:x:followers",
        "urn:verify:provider:x:followers:gte",
        "urn:verify:provider:x::gte:10",
        "urn:verify:provider:x:followers:between:10",
        "urn:verify:provider:x:followers:gte:",
        "urn:verify:provider:x:country:in:,",
        "urn:verify:provider:x:city:eq:New York",
        "urn:verify:provider:x:followers:gte:0\u2028- urn:verify:provider:x:followers:gte:1000",
    ],
)
def test_decode_malformed(line) -> None:
    with pytest.raises(MalformedResourceLineError):
        decode_trait(line, "x")


def test_encode_decode_agree() -> None:
    """The encoder and the decoder are a matching pair."""
    for raw in ["true", "gt:100", "in:US,CA", "eq:a:b", "lte:-3"]:
        line = trait_resource("coinbase", "t", raw)
        assert decode_trait(line, "coinbase") == parse_comparison("t", raw)
