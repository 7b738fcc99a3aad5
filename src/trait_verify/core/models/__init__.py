# SPDX-License-Identifier: MPL-2.0
"""Data models for trait verification."""
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from trait_verify.core.grammar import TraitRequirement


class MismatchReason(str, Enum):
    """Why an expected trait was not satisfied by a statement."""

    MISSING = "missing"
    NOT_STRICT_ENOUGH = "not_strict_enough"
    UNSUPPORTED_OPERATOR = "unsupported_operator"
    INVALID_VALUE = "invalid_value"
    UNEXPECTED_ACTION = "unexpected_action"


@dataclass(frozen=True)
class Mismatch:
    """One expected trait the statement does not satisfy."""

    trait: str
    expected: str
    found: Optional[str]
    reason: MismatchReason = MismatchReason.NOT_STRICT_ENOUGH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trait": self.trait,
            "expected": self.expected,
            "found": self.found,
            "reason": self.reason.value,
        }


@dataclass
class ValidationResult:
    """Result of comparing a statement's traits against expected traits."""

    valid: bool
    mismatches: List[Mismatch] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        return {
            "valid": self.valid,
            "mismatches": [m.to_dict() for m in self.mismatches],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert the result to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class BuiltStatement:
    """A freshly built signable statement and the values generated for it."""

    message: str
    nonce: str
    issued_at: str
    expiration_time: str
    resources: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["resources"] = list(self.resources)
        return data


@dataclass
class ResourceSet:
    """Everything recovered from the resource section of a statement in one pass."""

    resources: List[str] = field(default_factory=list)
    providers: List[str] = field(default_factory=list)
    traits: Dict[str, Dict[str, TraitRequirement]] = field(default_factory=dict)
    action: Optional[str] = None
    verification_id: Optional[str] = None
    malformed: List[str] = field(default_factory=list)

    def traits_for(self, provider: str) -> Dict[str, TraitRequirement]:
        return dict(self.traits.get(provider, {}))


@dataclass
class ParsedStatement:
    """Header fields and resources of a signable statement."""

    domain: str
    address: str
    uri: Optional[str] = None
    version: Optional[str] = None
    chain_id: Optional[int] = None
    nonce: Optional[str] = None
    issued_at: Optional[datetime] = None
    expiration_time: Optional[datetime] = None
    statement: Optional[str] = None
    request_id: Optional[str] = None
    resources: List[str] = field(default_factory=list)
