# SPDX-License-Identifier: MPL-2.0
"""Trait comparator.

Decides whether the trait requirements found in a signed statement are at
least as strict as the ones the relying party expects. Equality is not
enough: a client must not be able to sign a looser bound and still pass.

Rules, per expected trait:

* ``eq``: the statement must carry ``eq`` with the same typed value.
* ``gt``/``gte``/``lt``/``lte``: both sides are turned into integer
  intervals (``gt:999`` is ``[1000, +inf)``, ``eq:5`` is ``[5, 5]``) and the
  found interval must lie inside the expected one.
* ``in``: subset policy. A found ``in`` list must be a subset of the expected
  list; a found ``eq`` value must be one of the expected values.

Traits present in the statement but not expected are ignored. All mismatches
are reported, not only the first.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple, Union

from trait_verify.core.exceptions import TraitGrammarError
from trait_verify.core.grammar import (
    Operator,
    TraitRequirement,
    parse_comparison,
    render_raw,
    value_kind,
)
from trait_verify.core.models import Mismatch, MismatchReason, ValidationResult
from trait_verify.core.parser import parse_trait_requirements

logger = logging.getLogger(__name__)

TraitInput = Union[str, TraitRequirement]

# (low, high), both inclusive; None is unbounded
Interval = Tuple[Optional[int], Optional[int]]


def _interval(requirement: TraitRequirement) -> Interval:
    value = requirement.value
    op = requirement.operator
    if op is Operator.GT:
        return value + 1, None
    if op is Operator.GTE:
        return value, None
    if op is Operator.LT:
        return None, value - 1
    if op is Operator.LTE:
        return None, value
    return value, value


def _contains(outer: Interval, inner: Interval) -> bool:
    outer_low, outer_high = outer
    inner_low, inner_high = inner
    if outer_low is not None and (inner_low is None or inner_low < outer_low):
        return False
    if outer_high is not None and (inner_high is None or inner_high > outer_high):
        return False
    return True


def is_at_least_as_strict(found: TraitRequirement, expected: TraitRequirement) -> bool:
    """Return True if ``found`` implies ``expected``.

    Both requirements must be well typed.
    """
    if expected.operator is Operator.EQ:
        return (
            found.operator is Operator.EQ
            and value_kind(found.value) == value_kind(expected.value)
            and found.value == expected.value
        )

    if expected.operator.is_numeric:
        if found.operator is not Operator.EQ and not found.operator.is_numeric:
            return False
        if value_kind(found.value) != "integer":
            return False
        return _contains(_interval(expected), _interval(found))

    allowed = expected.value
    if found.operator is Operator.IN:
        return found.value <= allowed
    if found.operator is Operator.EQ:
        return found.text in allowed
    return False


def _coerce(name: str, value: TraitInput) -> TraitRequirement:
    if isinstance(value, TraitRequirement):
        return value
    return parse_comparison(name, value)


def _raw(value: TraitInput) -> str:
    if isinstance(value, TraitRequirement):
        return value.raw
    return render_raw(value)


def compare_trait(name: str, found: Optional[TraitInput], expected: TraitInput) -> Optional[Mismatch]:
    """Compare one trait; return a :class:`Mismatch` or ``None`` if satisfied."""
    expected_raw = _raw(expected)
    if found is None:
        return Mismatch(name, expected_raw, None, MismatchReason.MISSING)

    found_raw = _raw(found)
    try:
        expected_req = _coerce(name, expected)
        found_req = _coerce(name, found)
    except TraitGrammarError:
        return Mismatch(name, expected_raw, found_raw, MismatchReason.INVALID_VALUE)

    if not expected_req.is_well_typed() or not found_req.is_well_typed():
        return Mismatch(name, expected_raw, found_raw, MismatchReason.UNSUPPORTED_OPERATOR)

    if not is_at_least_as_strict(found_req, expected_req):
        return Mismatch(name, expected_raw, found_raw, MismatchReason.NOT_STRICT_ENOUGH)

    return None


def validate_traits(
    found: Mapping[str, TraitInput],
    expected: Mapping[str, TraitInput],
) -> ValidationResult:
    """Check ``found`` traits against ``expected`` traits.

    Args:
        found: Traits recovered from the statement (raw strings or requirements)
        expected: Traits the relying party requires, from trusted code only

    Returns:
        A ValidationResult that is valid iff no expected trait mismatched
    """
    mismatches = []
    for name, expected_value in expected.items():
        mismatch = compare_trait(name, found.get(name), expected_value)
        if mismatch is not None:
            mismatches.append(mismatch)

    if mismatches:
        logger.debug(
            "Trait validation failed: %s",
            ", ".join(f"{m.trait} ({m.reason.value})" for m in mismatches),
        )
    return ValidationResult(valid=not mismatches, mismatches=mismatches)


def validate_statement(
    message: str,
    provider: str,
    expected: Mapping[str, TraitInput],
) -> ValidationResult:
    """Parse the traits of ``provider`` from ``message`` and validate them."""
    return validate_traits(parse_trait_requirements(message, provider), expected)
