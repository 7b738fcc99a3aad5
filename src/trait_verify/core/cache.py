# SPDX-License-Identifier: MPL-2.0
"""Signature cache.

Keeps recent signatures per ``(identity, action)`` so a user is not asked to
sign the same request twice within a short window. It is a latency
optimisation only; the parser and the comparator never read it.

Instances are owned by the caller (typically one per session) so tests and
sessions stay isolated.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


def _key(identity: str, action: str) -> Tuple[str, str]:
    # wallet addresses compare case-insensitively
    return identity.lower(), action


@dataclass(frozen=True)
class CachedSignature:
    """A signature cached for one identity and action."""

    identity: str
    action: str
    signature: str
    message: str
    created_at: float


class SignatureCache:
    """Thread-safe TTL map keyed by ``(identity, action)``."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], CachedSignature] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, identity: str, action: str) -> Optional[CachedSignature]:
        """Return the cached signature, or None on a miss.

        Expired entries and entries whose identity or action no longer match
        the request are evicted and reported as misses.
        """
        key = _key(identity, action)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.identity != identity or entry.action != action:
                logger.debug("Dropping stale signature cache entry for %s", identity)
                del self._entries[key]
                return None
            if self._clock() - entry.created_at >= self._ttl:
                del self._entries[key]
                return None
            return entry

    def put(self, identity: str, action: str, signature: str, message: str) -> CachedSignature:
        entry = CachedSignature(
            identity=identity,
            action=action,
            signature=signature,
            message=message,
            created_at=self._clock(),
        )
        with self._lock:
            self._entries[_key(identity, action)] = entry
        return entry

    def invalidate(self, identity: str, action: str) -> None:
        """Drop the entry for ``(identity, action)``, e.g. after a signing error."""
        with self._lock:
            self._entries.pop(_key(identity, action), None)

    def invalidate_identity(self, identity: str) -> None:
        """Drop every entry of ``identity``."""
        with self._lock:
            for key in [k for k in self._entries if k[0] == identity.lower()]:
                del self._entries[key]

    def switch_identity(self, identity: str) -> None:
        """Keep only entries of ``identity``; called when the active wallet changes."""
        with self._lock:
            for key in [k for k in self._entries if k[0] != identity.lower()]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
