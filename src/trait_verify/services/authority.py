# SPDX-License-Identifier: MPL-2.0
"""Verification authority client.

The authority confirms account ownership and trait values and issues tokens.
This client only forwards a ``{message, signature}`` pair and classifies the
answer; it must be called only after the trait gate accepted the statement.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp

from trait_verify.config import Settings
from trait_verify.core.exceptions import ConfigurationError, VerificationAuthorityError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/base_verify_token"
REQUEST_TIMEOUT = 30  # seconds


class AuthorityOutcome(str, Enum):
    """The response classes a host application has to tell apart."""

    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    REQUIREMENTS_UNMET = "requirements_unmet"


STATUS_OUTCOMES = {
    200: AuthorityOutcome.VERIFIED,
    404: AuthorityOutcome.NOT_VERIFIED,
}

# a verified account whose traits miss the requirements is reported as HTTP 400
TRAITS_NOT_SATISFIED = "verification_traits_not_satisfied"


def classify_response(status: int, body: Dict[str, Any]) -> Optional[AuthorityOutcome]:
    """Map an authority answer to its outcome, or None if it is not one of them."""
    if status == 400 and body.get("message") == TRAITS_NOT_SATISFIED:
        return AuthorityOutcome.REQUIREMENTS_UNMET
    return STATUS_OUTCOMES.get(status)


@dataclass
class AuthorityResponse:
    """A classified answer from the verification authority."""

    outcome: AuthorityOutcome
    status: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def token(self) -> Optional[str]:
        return self.body.get("token")

    def to_dict(self) -> Dict[str, Any]:
        return {"outcome": self.outcome.value, "status": self.status, "body": self.body}


class VerificationAuthorityClient:
    """Async HTTP client for the verification authority."""

    def __init__(
        self,
        base_url: str,
        publisher_key: str,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if not publisher_key:
            raise ConfigurationError("A publisher key is required to call the verification authority")
        self.base_url = base_url.rstrip("/")
        self.publisher_key = publisher_key
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerificationAuthorityClient":
        if not settings.publisher_key:
            raise ConfigurationError("TRAIT_VERIFY_PUBLISHER_KEY is not set")
        return cls(settings.authority_url, settings.publisher_key, timeout=settings.authority_timeout)

    async def __aenter__(self) -> "VerificationAuthorityClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def submit(self, message: str, signature: str) -> AuthorityResponse:
        """Forward a signed statement to the authority.

        Args:
            message: The statement text that was signed
            signature: The signature over ``message``

        Returns:
            The classified authority response

        Raises:
            VerificationAuthorityError: on transport errors or unexpected statuses
        """
        url = f"{self.base_url}{TOKEN_PATH}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.publisher_key}",
        }
        session = self._get_session()
        try:
            async with session.post(
                url,
                json={"message": message, "signature": signature},
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                status = response.status
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = {"raw": await response.text()}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Verification authority request failed: %s", e)
            raise VerificationAuthorityError(f"Verification authority unreachable: {e}") from e

        if not isinstance(body, dict):
            body = {"data": body}

        outcome = classify_response(status, body)
        if outcome is None:
            raise VerificationAuthorityError(
                f"Unexpected response from verification authority: HTTP {status}",
                status=status,
                details=body,
            )
        logger.info("Verification authority answered %s (HTTP %d)", outcome.value, status)
        return AuthorityResponse(outcome=outcome, status=status, body=body)
