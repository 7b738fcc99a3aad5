# SPDX-License-Identifier: MPL-2.0
"""
Services around the trait core: signing, the trait gate and the
verification authority client.
"""

from .authority import AuthorityOutcome, AuthorityResponse, VerificationAuthorityClient
from .gate import GateDecision, TraitGate
from .signing import GeneratedSignature, generate_signature

__all__ = [
    "AuthorityOutcome",
    "AuthorityResponse",
    "VerificationAuthorityClient",
    "GateDecision",
    "TraitGate",
    "GeneratedSignature",
    "generate_signature",
]
