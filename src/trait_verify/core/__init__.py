# SPDX-License-Identifier: MPL-2.0
"""Core functionality for trait verification."""
from trait_verify.core.cache import CachedSignature, SignatureCache
from trait_verify.core.comparator import validate_statement, validate_traits
from trait_verify.core.grammar import Operator, TraitRequirement, encode_trait, parse_comparison
from trait_verify.core.models import BuiltStatement, Mismatch, MismatchReason, ValidationResult
from trait_verify.core.parser import (
    extract_action,
    extract_verification_id,
    parse_statement,
    parse_traits,
    scan_resources,
)
from trait_verify.core.statement import build_statement

__all__ = [
    "Operator",
    "TraitRequirement",
    "encode_trait",
    "parse_comparison",
    "build_statement",
    "BuiltStatement",
    "parse_traits",
    "parse_statement",
    "scan_resources",
    "extract_action",
    "extract_verification_id",
    "validate_traits",
    "validate_statement",
    "ValidationResult",
    "Mismatch",
    "MismatchReason",
    "SignatureCache",
    "CachedSignature",
]
