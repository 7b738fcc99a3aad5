# SPDX-License-Identifier: MPL-2.0
"""
Trait Verify - Server-defined eligibility for wallet sign-in statements.

This package encodes trait requirements (e.g. "more than 1000 followers on X")
into signable statements, recovers them from signed statements, and checks on
a trusted backend that a client has not weakened them before the statement is
forwarded to the verification authority.
"""

import contextlib
from importlib.metadata import version

# Set up version
__version__ = "0.1.0"

with contextlib.suppress(Exception):
    __version__ = version("trait-verify")


# Core components
from trait_verify.core import build_statement, parse_traits, validate_statement, validate_traits

# Public API
__all__ = [
    "build_statement",
    "parse_traits",
    "validate_traits",
    "validate_statement",
    "__version__",
]
