# SPDX-License-Identifier: MPL-2.0
"""Custom exceptions for trait verification.

This module defines specific exception types for the error conditions of the
trait grammar, statement handling, signing and the verification authority
boundary. Parsing and comparison accumulate problems instead of raising; the
exceptions below are reserved for structurally invalid input and for the
external collaborators.
"""

from typing import Any, Dict, Optional


class TraitVerifyError(Exception):
    """Base exception for all trait verification errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TraitGrammarError(TraitVerifyError):
    """Raised when a trait or resource identifier cannot be encoded or decoded."""

    pass


class MalformedResourceLineError(TraitGrammarError):
    """Raised when a trait resource line does not follow the grammar.

    The resource parser catches this and skips the offending line.
    """

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"Malformed resource line {line!r}: {reason}", {"line": line, "reason": reason})
        self.line = line
        self.reason = reason


class UnsupportedOperatorError(TraitGrammarError):
    """Raised by the opt-in strict pre-flight when an operator does not fit the value kind."""

    pass


class StatementError(TraitVerifyError):
    """Raised when a statement is structurally invalid (e.g. empty text)."""

    pass


class SigningError(TraitVerifyError):
    """Raised when the signing step fails."""

    pass


class VerificationAuthorityError(TraitVerifyError):
    """Raised when the verification authority cannot be reached or answers unexpectedly."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the authority exception.

        Args:
            message: Error message
            status: Optional HTTP status returned by the authority
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.status = status


class ConfigurationError(TraitVerifyError):
    """Raised when configuration is invalid or missing."""

    pass
