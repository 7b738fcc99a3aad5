# SPDX-License-Identifier: MPL-2.0
"""Statement builder.

Builds the EIP-4361 (Sign-In with Ethereum) message a wallet signs. The
message itself is rendered by :class:`siwe.SiweMessage`, the same model the
verification authority parses. Trait requirements travel in the
``Resources`` section as ``urn:verify:`` resource identifiers, always in the
same order: provider marker, traits in caller order, action, verification
id. Two builds with the same inputs differ only in nonce and timestamps.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Tuple

from siwe import SiweMessage

from trait_verify.config import Settings, get_settings
from trait_verify.core.exceptions import StatementError
from trait_verify.core.grammar import (
    action_resource,
    ensure_well_typed,
    parse_comparison,
    provider_resource,
    trait_resource,
    verification_id_resource,
)
from trait_verify.core.models import BuiltStatement

logger = logging.getLogger(__name__)

RESOURCES_HEADER = "Resources:"
RESOURCE_MARKER = "- "
MESSAGE_VERSION = "1"

_NONCE_ALPHABET = string.ascii_letters + string.digits
NONCE_LENGTH = 17


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """Return a random alphanumeric nonce."""
    return "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(length))


def format_timestamp(value: datetime) -> str:
    """Format ``value`` as UTC ISO-8601 with milliseconds, e.g. ``2025-01-01T00:00:00.000Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_resources(
    provider: Optional[str] = None,
    traits: Optional[Mapping[str, Any]] = None,
    action: Optional[str] = None,
    verification_id: Optional[str] = None,
    strict: bool = False,
) -> Tuple[str, ...]:
    """Build the resource identifiers of a statement in canonical order.

    Args:
        provider: Provider the traits are scoped to
        traits: Mapping of trait name to raw value (``"gte:1000"``, ``"true"``)
        action: Relying-party action name
        verification_id: Optional correlation id
        strict: Reject operators that do not fit their value kind

    Returns:
        The resource identifiers, provider marker first
    """
    resources: List[str] = []
    traits = traits or {}

    if provider:
        resources.append(provider_resource(provider))
        for name, raw in traits.items():
            if strict:
                ensure_well_typed(parse_comparison(name, raw))
            resources.append(trait_resource(provider, name, raw))
    elif traits:
        logger.debug("Ignoring %d trait(s) without a provider", len(traits))

    if action:
        resources.append(action_resource(action))

    if verification_id:
        resources.append(verification_id_resource(verification_id))

    return tuple(resources)


def render_message(
    *,
    domain: str,
    address: str,
    uri: str,
    chain_id: int,
    nonce: str,
    issued_at: str,
    expiration_time: Optional[str] = None,
    statement: Optional[str] = None,
    request_id: Optional[str] = None,
    resources: Tuple[str, ...] = (),
) -> str:
    """Render the message text with :class:`siwe.SiweMessage`.

    Raises:
        StatementError: if a field is rejected by the EIP-4361 model, e.g. an
            address that is not EIP-55 checksummed.
    """
    try:
        message = SiweMessage(
            domain=domain,
            address=address,
            uri=uri,
            version=MESSAGE_VERSION,
            chain_id=chain_id,
            nonce=nonce,
            issued_at=issued_at,
            expiration_time=expiration_time,
            statement=statement or None,
            request_id=request_id,
            resources=list(resources) or None,
        )
        return message.prepare_message()
    except ValueError as e:
        raise StatementError(f"Invalid statement field: {e}", {"address": address}) from e


def _single_line(label: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise StatementError(f"{label} must be a single line", {label: value})


def build_statement(
    address: str,
    provider: Optional[str] = None,
    traits: Optional[Mapping[str, Any]] = None,
    action: Optional[str] = None,
    verification_id: Optional[str] = None,
    *,
    domain: Optional[str] = None,
    uri: Optional[str] = None,
    chain_id: Optional[int] = None,
    statement: Optional[str] = None,
    issued_at: Optional[datetime] = None,
    expires_in: Optional[timedelta] = None,
    strict: bool = False,
    settings: Optional[Settings] = None,
) -> BuiltStatement:
    """Build a signable statement for ``address``.

    Every call generates a fresh nonce and always sets both the issue and the
    expiration time. Freshness is enforced by the verification authority, not
    here.

    Args:
        address: EIP-55 checksummed wallet address of the signer
        provider: Provider the trait requirements are scoped to
        traits: Mapping of trait name to raw value, in emission order
        action: Relying-party action name
        verification_id: Optional correlation id
        domain: Domain override (defaults to the configured app host)
        uri: URI override (defaults to the configured app URL)
        chain_id: Chain id override (defaults to Base)
        statement: Human readable statement line override
        issued_at: Issue time (defaults to now)
        expires_in: Validity window (defaults to the configured TTL)
        strict: Run the operator/value pre-flight check on every trait
        settings: Settings to take defaults from

    Returns:
        The message text together with its nonce and timestamps

    Raises:
        StatementError: if the address or an override is not a valid EIP-4361 field
        TraitGrammarError: if a provider, trait name, action or id cannot be encoded
    """
    if not isinstance(address, str) or not address.strip():
        raise StatementError("address must be a non-empty string")
    _single_line("address", address)

    settings = settings or get_settings()
    domain = domain or settings.domain
    uri = uri or settings.app_url
    chain_id = chain_id if chain_id is not None else settings.chain_id
    statement = statement if statement is not None else settings.statement
    for label, value in (("domain", domain), ("uri", uri), ("statement", statement)):
        _single_line(label, value)

    resources = build_resources(provider, traits, action, verification_id, strict=strict)

    issued = issued_at or datetime.now(timezone.utc)
    expires = issued + (expires_in or timedelta(hours=settings.statement_ttl_hours))
    nonce = generate_nonce()

    message = render_message(
        domain=domain,
        address=address,
        uri=uri,
        chain_id=chain_id,
        nonce=nonce,
        issued_at=format_timestamp(issued),
        expiration_time=format_timestamp(expires),
        statement=statement,
        resources=resources,
    )
    return BuiltStatement(
        message=message,
        nonce=nonce,
        issued_at=format_timestamp(issued),
        expiration_time=format_timestamp(expires),
        resources=resources,
    )
