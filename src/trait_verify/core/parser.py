# SPDX-License-Identifier: MPL-2.0
"""Resource parser.

Recovers trait requirements, the action and the verification id from the
``Resources`` section of a signed statement. Only lines inside that section
that start with the ``- `` marker are resource identifiers; the same section is
what the verification authority reads.

Parsing never aborts on a bad trait line: malformed lines are skipped so that
the comparator reports the affected trait as missing. Only empty statement
text is a hard failure.

When the same trait appears more than once for a provider, the last
occurrence wins. A client that appends a weaker duplicate after a correct
line therefore gets the weaker requirement compared against the relying
party's expectation, and rejected.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from siwe import SiweMessage

from trait_verify.core.exceptions import StatementError, TraitGrammarError
from trait_verify.core.grammar import (
    ACTION_PREFIX,
    PROVIDER_PREFIX,
    VERIFICATION_ID_PREFIX,
    TraitRequirement,
    decode_trait,
)
from trait_verify.core.models import ParsedStatement, ResourceSet
from trait_verify.core.statement import RESOURCE_MARKER, RESOURCES_HEADER

logger = logging.getLogger(__name__)


def _require_text(message: str) -> None:
    if not isinstance(message, str) or not message.strip():
        raise StatementError("statement text is empty")


def split_lines(message: str) -> List[str]:
    """Split ``message`` the way EIP-4361 does: on ``\\n`` only.

    A trailing ``\\r`` is dropped. Other line boundaries (``\\u2028``,
    ``\\x0b``, ...) stay inside their line.
    """
    return [line[:-1] if line.endswith("\r") else line for line in message.split("\n")]


def iter_resource_lines(message: str) -> List[str]:
    """Return the resource identifiers of ``message`` in order of appearance."""
    _require_text(message)
    resources = []
    in_resources = False
    for line in split_lines(message):
        if line == RESOURCES_HEADER:
            in_resources = True
            continue
        if in_resources and line.startswith(RESOURCE_MARKER):
            resources.append(line[len(RESOURCE_MARKER):])
    return resources


def _add_trait(result: ResourceSet, provider: str, resource: str) -> None:
    try:
        requirement = decode_trait(resource, provider)
    except TraitGrammarError as exc:
        logger.debug("Skipping malformed resource line: %s", exc.message)
        result.malformed.append(resource)
        return
    if requirement is None:
        return

    provider_traits = result.traits.setdefault(provider, {})
    if requirement.name in provider_traits:
        logger.warning(
            "Duplicate trait '%s' for provider '%s'; last occurrence (%s) wins over %s",
            requirement.name,
            provider,
            requirement.raw,
            provider_traits[requirement.name].raw,
        )
    provider_traits[requirement.name] = requirement


def scan_resources(message: str) -> ResourceSet:
    """Scan the resource section of ``message`` once.

    Raises:
        StatementError: if ``message`` is empty.
    """
    result = ResourceSet()
    for resource in iter_resource_lines(message):
        result.resources.append(resource)

        if resource.startswith(PROVIDER_PREFIX):
            rest = resource[len(PROVIDER_PREFIX):]
            provider, sep, _ = rest.partition(":")
            if not provider:
                result.malformed.append(resource)
                continue
            if not sep:
                if provider not in result.providers:
                    result.providers.append(provider)
                continue
            _add_trait(result, provider, resource)

        elif resource.startswith(ACTION_PREFIX):
            action = resource[len(ACTION_PREFIX):]
            if not action:
                result.malformed.append(resource)
                continue
            if result.action is not None and result.action != action:
                logger.warning("Multiple actions in statement; using %r over %r", action, result.action)
            result.action = action

        elif resource.startswith(VERIFICATION_ID_PREFIX):
            verification_id = resource[len(VERIFICATION_ID_PREFIX):]
            if not verification_id:
                result.malformed.append(resource)
                continue
            result.verification_id = verification_id

    return result


def parse_trait_requirements(message: str, provider: str) -> Dict[str, TraitRequirement]:
    """Return the typed trait requirements of ``provider`` found in ``message``."""
    return scan_resources(message).traits_for(provider)


def parse_traits(message: str, provider: str) -> Dict[str, str]:
    """Return ``{trait name: raw comparison string}`` for ``provider``.

    Raw strings are in canonical form, always carrying the operator
    (``"eq:true"``, ``"gte:1000"``).
    """
    return {
        name: requirement.raw
        for name, requirement in parse_trait_requirements(message, provider).items()
    }


def extract_action(message: str) -> Optional[str]:
    return scan_resources(message).action


def extract_verification_id(message: str) -> Optional[str]:
    return scan_resources(message).verification_id


def _parse_timestamp(label: str, value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise StatementError(f"Invalid {label}: {value!r}") from e


def parse_statement(message: str) -> ParsedStatement:
    """Parse the header fields of an EIP-4361 statement with :mod:`siwe`.

    Raises:
        StatementError: if the message is not a valid EIP-4361 message.
    """
    _require_text(message)
    try:
        siwe_message = SiweMessage.from_message(message=message)
    except ValueError as e:
        raise StatementError(f"Invalid statement: {e}") from e

    return ParsedStatement(
        domain=siwe_message.domain,
        address=siwe_message.address,
        uri=str(siwe_message.uri),
        version=siwe_message.version.value,
        chain_id=siwe_message.chain_id,
        nonce=siwe_message.nonce,
        issued_at=_parse_timestamp("issued at", siwe_message.issued_at),
        expiration_time=_parse_timestamp("expiration time", siwe_message.expiration_time),
        statement=siwe_message.statement,
        request_id=siwe_message.request_id,
        resources=iter_resource_lines(message),
    )
