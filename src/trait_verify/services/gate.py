# SPDX-License-Identifier: MPL-2.0
"""Trait gate.

The trusted backend step between a client and the verification authority. A
signed statement is validated locally against the relying party's own
expected traits first; the authority is called only if nothing mismatched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from trait_verify.core.comparator import validate_traits
from trait_verify.core.exceptions import ConfigurationError
from trait_verify.core.grammar import ensure_well_typed, parse_comparison, render_raw
from trait_verify.core.models import Mismatch, MismatchReason, ValidationResult
from trait_verify.core.parser import scan_resources
from trait_verify.scenarios import Scenario
from trait_verify.services.authority import AuthorityOutcome, AuthorityResponse

logger = logging.getLogger(__name__)

ACTION_TRAIT = "action"


class AuthoritySubmitter(Protocol):
    async def submit(self, message: str, signature: str) -> AuthorityResponse: ...


@dataclass
class GateDecision:
    """Outcome of :meth:`TraitGate.verify`."""

    validation: ValidationResult
    authority: Optional[AuthorityResponse] = None

    @property
    def forwarded(self) -> bool:
        return self.authority is not None

    @property
    def accepted(self) -> bool:
        return (
            self.validation.valid
            and self.authority is not None
            and self.authority.outcome is AuthorityOutcome.VERIFIED
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "validation": self.validation.to_dict(),
            "authority": self.authority.to_dict() if self.authority else None,
        }


class TraitGate:
    """Validates signed statements for one provider, action and trait set.

    The expected traits come from trusted code. They are checked once here so
    a misconfigured gate fails at startup rather than rejecting every user.
    """

    def __init__(
        self,
        provider: str,
        expected_traits: Mapping[str, Any],
        action: Optional[str] = None,
        authority: Optional[AuthoritySubmitter] = None,
    ) -> None:
        self.provider = provider
        self.expected_traits = {name: render_raw(raw) for name, raw in expected_traits.items()}
        for name, raw in self.expected_traits.items():
            ensure_well_typed(parse_comparison(name, raw))
        self.action = action
        self.authority = authority

    @classmethod
    def from_scenario(cls, scenario: Scenario, authority: Optional[AuthoritySubmitter] = None) -> "TraitGate":
        return cls(scenario.provider, scenario.traits, action=scenario.action, authority=authority)

    def check(self, message: str) -> ValidationResult:
        """Validate ``message`` locally, without any I/O.

        Raises:
            StatementError: if ``message`` is empty.
        """
        resources = scan_resources(message)
        result = validate_traits(resources.traits_for(self.provider), self.expected_traits)

        if self.action is not None and resources.action != self.action:
            reason = MismatchReason.MISSING if resources.action is None else MismatchReason.UNEXPECTED_ACTION
            result.mismatches.append(Mismatch(ACTION_TRAIT, self.action, resources.action, reason))
            result.valid = False
        return result

    async def verify(self, message: str, signature: str) -> GateDecision:
        """Validate ``message`` and, only if valid, forward it to the authority.

        Raises:
            StatementError: if ``message`` is empty.
            ConfigurationError: if the statement is valid but no authority is set.
            VerificationAuthorityError: if the authority call fails.
        """
        validation = self.check(message)
        if not validation.valid:
            logger.warning(
                "Rejected statement for provider '%s': %d mismatch(es) (%s)",
                self.provider,
                len(validation.mismatches),
                ", ".join(m.trait for m in validation.mismatches),
            )
            return GateDecision(validation=validation)

        if self.authority is None:
            raise ConfigurationError("No verification authority configured")

        logger.info("Statement for provider '%s' passed local validation; forwarding", self.provider)
        response = await self.authority.submit(message, signature)
        return GateDecision(validation=validation, authority=response)
