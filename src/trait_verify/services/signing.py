# SPDX-License-Identifier: MPL-2.0
"""Signature generation.

Builds a statement and has it signed, either by a wallet integration (an
address plus a sign function) or by a development key pair. An optional
:class:`~trait_verify.core.cache.SignatureCache` avoids prompting the wallet
again for the same identity, action and statement scope (domain, URI, chain,
statement line and resources).
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

from trait_verify.config import Settings
from trait_verify.core.cache import CachedSignature, SignatureCache
from trait_verify.core.crypto import DevKeyPair
from trait_verify.core.exceptions import SigningError, StatementError
from trait_verify.core.models import BuiltStatement
from trait_verify.core.parser import parse_statement
from trait_verify.core.statement import build_statement

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "create_verification_url"
DEFAULT_PROVIDER = "x"

SignFunction = Callable[[str], Union[str, Awaitable[str]]]


@dataclass(frozen=True)
class GeneratedSignature:
    """A statement together with its signature."""

    address: str
    message: str
    signature: str
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _scope(message: str) -> Tuple[Any, ...]:
    # everything that must match for a signed statement to be reused
    parsed = parse_statement(message)
    return (
        parsed.domain,
        parsed.address,
        parsed.uri,
        parsed.chain_id,
        parsed.statement,
        tuple(parsed.resources),
    )


def _from_cache(entry: CachedSignature, built: BuiltStatement) -> Optional[GeneratedSignature]:
    try:
        if _scope(entry.message) != _scope(built.message):
            return None
        nonce = parse_statement(entry.message).nonce or ""
    except StatementError:
        return None
    return GeneratedSignature(entry.identity, entry.message, entry.signature, nonce)


async def generate_signature(
    *,
    address: Optional[str] = None,
    sign_message: Optional[SignFunction] = None,
    key_pair: Optional[DevKeyPair] = None,
    provider: str = DEFAULT_PROVIDER,
    traits: Optional[Mapping[str, Any]] = None,
    action: str = DEFAULT_ACTION,
    verification_id: Optional[str] = None,
    cache: Optional[SignatureCache] = None,
    settings: Optional[Settings] = None,
    **statement_overrides: Any,
) -> GeneratedSignature:
    """Build a statement and sign it.

    Args:
        address: Wallet address, required with ``sign_message``
        sign_message: Wallet sign function; may return the signature or an awaitable
        key_pair: Development key pair used when no wallet is given
        provider: Provider the traits are scoped to
        traits: Mapping of trait name to raw value
        action: Relying-party action name
        verification_id: Optional correlation id
        cache: Optional signature cache to consult and fill
        settings: Settings for statement defaults
        **statement_overrides: ``domain``, ``uri``, ``chain_id`` or ``statement``

    Returns:
        The signed statement

    Raises:
        SigningError: if no signer is given or signing fails
    """
    if sign_message is not None and address:
        signer = sign_message
    elif key_pair is not None:
        address = key_pair.address
        signer = key_pair.sign_message
    else:
        raise SigningError("Either key_pair or both sign_message and address must be provided")

    built = build_statement(
        address,
        provider,
        traits,
        action,
        verification_id,
        settings=settings,
        **statement_overrides,
    )

    if cache is not None:
        entry = cache.get(address, action)
        if entry is not None:
            cached = _from_cache(entry, built)
            if cached is not None:
                logger.debug("Reusing cached signature for %s (%s)", address, action)
                return cached
            cache.invalidate(address, action)

    try:
        signature = signer(built.message)
        if inspect.isawaitable(signature):
            signature = await signature
    except Exception as e:
        if cache is not None:
            cache.invalidate(address, action)
        logger.exception("Error generating signature for %s", address)
        raise SigningError(f"Failed to generate signature: {e}") from e

    if cache is not None:
        cache.put(address, action, signature, built.message)

    return GeneratedSignature(
        address=address,
        message=built.message,
        signature=signature,
        nonce=built.nonce,
    )
