# SPDX-License-Identifier: MPL-2.0
"""Trait grammar.

A trait requirement is a trait name, a comparison operator and a value. It is
encoded as ``{name}:{operator}:{value}`` and embedded in a resource identifier
scoped to a provider::

    urn:verify:provider:{provider}                          (scope marker)
    urn:verify:provider:{provider}:{name}:{operator}:{value} (one trait)
    urn:verify:action:{action}
    urn:verify:verificationid:{id}

The same pair of functions serializes and deserializes a requirement for the
statement builder, the resource parser and the comparator, so the encoded and
decoded forms cannot drift apart.

Encoding is permissive: ``gt:abc`` encodes fine. Whether an operator fits its
value kind is decided downstream by the comparator (see
:meth:`TraitRequirement.is_well_typed`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple, Union

from trait_verify.core.exceptions import (
    MalformedResourceLineError,
    TraitGrammarError,
    UnsupportedOperatorError,
)

URN_PREFIX = "urn:verify:"
PROVIDER_PREFIX = URN_PREFIX + "provider:"
ACTION_PREFIX = URN_PREFIX + "action:"
VERIFICATION_ID_PREFIX = URN_PREFIX + "verificationid:"

_OPERATION_RE = re.compile(r"(eq|gt|gte|lt|lte|in):(.+)")
_INTEGER_RE = re.compile(r"-?[0-9]+")
# RFC 3986 path characters; every resource must be a valid URI
_URI_TEXT_RE = re.compile(r"(?:[A-Za-z0-9\-._~!$&'()*+,;=:@/]|%[0-9A-Fa-f]{2})+")

Value = Union[bool, int, str, FrozenSet[str]]


class Operator(str, Enum):
    """Comparison operator of a trait requirement."""

    EQ = "eq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_OPERATORS


NUMERIC_OPERATORS = frozenset({Operator.GT, Operator.GTE, Operator.LT, Operator.LTE})


def value_kind(value: Value) -> str:
    """Return the kind name of a decoded value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, frozenset):
        return "string_set"
    return "string"


@dataclass(frozen=True)
class TraitRequirement:
    """A typed trait requirement.

    ``text`` keeps the value exactly as written; it is the only form used for
    serialization, while ``value`` is the typed form used for comparison.
    """

    name: str
    operator: Operator
    value: Value
    text: str = field(compare=False)

    @property
    def raw(self) -> str:
        """Canonical raw comparison string, e.g. ``gte:1000`` or ``eq:true``."""
        return f"{self.operator.value}:{self.text}"

    def encode(self) -> str:
        return f"{self.name}:{self.raw}"

    def is_well_typed(self) -> bool:
        """Return True if the operator is allowed for the value kind.

        ``eq`` accepts every kind, ``gt``/``gte``/``lt``/``lte`` only integers
        and ``in`` only strings or string sets.
        """
        kind = value_kind(self.value)
        if self.operator is Operator.EQ:
            return kind != "string_set"
        if self.operator.is_numeric:
            return kind == "integer"
        return kind in ("string", "string_set")


def render_raw(raw: Any) -> str:
    """Render a caller supplied raw value as text.

    Python booleans render as ``true``/``false`` so they match the values the
    verification authority reports.
    """
    if isinstance(raw, bool):
        return "true" if raw else "false"
    return str(raw)


def is_uri_text(text: str) -> bool:
    """Return True if ``text`` only holds characters allowed in a URI path."""
    return bool(_URI_TEXT_RE.fullmatch(text))


def _check_uri_text(label: str, text: str) -> None:
    if not isinstance(text, str) or not text:
        raise TraitGrammarError(f"{label} must be a non-empty string", {label: text})
    if not is_uri_text(text):
        raise TraitGrammarError(
            f"{label} contains characters not allowed in a URI (percent-encode them)",
            {label: text},
        )


def _check_token(label: str, token: str) -> None:
    _check_uri_text(label, token)
    if ":" in token:
        raise TraitGrammarError(f"{label} must not contain ':'", {label: token})


def parse_value(operator: Operator, text: str) -> Value:
    """Decode the value part of a comparison for ``operator``.

    Raises:
        TraitGrammarError: if an ``in`` list has no items.
    """
    if operator is Operator.IN:
        items = frozenset(item.strip() for item in text.split(",") if item.strip())
        if not items:
            raise TraitGrammarError("'in' requires at least one value", {"value": text})
        return items
    if text == "true":
        return True
    if text == "false":
        return False
    if _INTEGER_RE.fullmatch(text):
        return int(text)
    return text


def encode_comparison(raw: Any) -> Tuple[Operator, str]:
    """Split a raw comparison string into operator and value text.

    ``"gte:1000"`` yields ``(Operator.GTE, "1000")``. Anything without a known
    operator prefix is an ``eq`` comparison on the unchanged string.
    """
    text = render_raw(raw)
    match = _OPERATION_RE.fullmatch(text)
    if match:
        return Operator(match.group(1)), match.group(2)
    return Operator.EQ, text


def parse_comparison(name: str, raw: Any) -> TraitRequirement:
    """Decode one raw comparison string into a :class:`TraitRequirement`."""
    operator, text = encode_comparison(raw)
    return TraitRequirement(name, operator, parse_value(operator, text), text)


def encode_trait(name: str, raw: Any) -> str:
    """Encode a trait as ``{name}:{operator}:{value}``."""
    _check_token("trait name", name)
    operator, text = encode_comparison(raw)
    _check_uri_text("trait value", text)
    return f"{name}:{operator.value}:{text}"


def ensure_well_typed(requirement: TraitRequirement) -> TraitRequirement:
    """Strict pre-flight check used by the statement builder on request.

    Raises:
        UnsupportedOperatorError: if the operator does not fit the value kind.
    """
    if not requirement.is_well_typed():
        raise UnsupportedOperatorError(
            f"Operator '{requirement.operator.value}' is not supported for "
            f"{value_kind(requirement.value)} trait '{requirement.name}'",
            {"trait": requirement.name, "raw": requirement.raw},
        )
    return requirement


def provider_resource(provider: str) -> str:
    _check_token("provider", provider)
    return f"{PROVIDER_PREFIX}{provider}"


def trait_resource(provider: str, name: str, raw: Any) -> str:
    return f"{provider_resource(provider)}:{encode_trait(name, raw)}"


def action_resource(action: str) -> str:
    _check_uri_text("action", action)
    return f"{ACTION_PREFIX}{action}"


def verification_id_resource(verification_id: str) -> str:
    _check_uri_text("verification id", verification_id)
    return f"{VERIFICATION_ID_PREFIX}{verification_id}"


def decode_trait(line: str, provider: str) -> Optional[TraitRequirement]:
    """Decode a trait resource line for ``provider``.

    Returns ``None`` for lines that are not traits of ``provider``: the bare
    scope marker, other providers, actions and verification ids. The value is
    everything after the second colon of the trait part, so values that
    contain ``:`` are kept intact.

    Raises:
        MalformedResourceLineError: if the line is a trait line for
            ``provider`` but does not follow the grammar.
    """
    scope = provider_resource(provider)
    prefix = scope + ":"
    if line == scope or not line.startswith(prefix):
        return None

    parts = line[len(prefix):].split(":", 2)
    if len(parts) != 3:
        raise MalformedResourceLineError(line, "expected name:operator:value")
    name, operator_text, text = parts
    if not name:
        raise MalformedResourceLineError(line, "empty trait name")
    try:
        operator = Operator(operator_text)
    except ValueError:
        raise MalformedResourceLineError(line, f"unknown operator {operator_text!r}") from None
    if not text:
        raise MalformedResourceLineError(line, "empty value")
    if not is_uri_text(name) or not is_uri_text(text):
        raise MalformedResourceLineError(line, "characters not allowed in a URI")
    try:
        value = parse_value(operator, text)
    except TraitGrammarError as exc:
        raise MalformedResourceLineError(line, exc.message) from exc
    return TraitRequirement(name, operator, value, text)
