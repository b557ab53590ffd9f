"""Single-use anti-forgery state tokens for out-of-band auth callbacks."""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from typing import Callable

__all__ = ["AuthStateValidator"]

LOGGER = logging.getLogger(__name__)


class AuthStateValidator:
    """Issues state tokens and accepts each of them at most once.

    Tokens live only in this object; nothing survives a restart. ``ttl_seconds``
    adds issuer-side expiry on top of the single-use rule.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        token_bytes: int = 32,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._token_bytes = token_bytes
        self._issued: dict[str, float] = {}

    def issue(self, token: str | None = None) -> str:
        """Record a new outstanding state; a fresh random value unless ``token`` is given."""

        token = token or secrets.token_urlsafe(self._token_bytes)
        self._issued[token] = self._clock()
        return token

    def validate(self, state: str | None) -> bool:
        """Consume ``state`` and report whether it was outstanding and fresh.

        The token is removed before returning ``True`` so a replay of the same
        value is rejected.
        """

        candidate = (state or "").strip()
        if not candidate:
            return False
        match = self._find(candidate)
        if match is None:
            LOGGER.debug("Rejecting auth state that was never issued or already used")
            return False
        issued_at = self._issued.pop(match)
        if self._ttl is not None and self._clock() - issued_at > self._ttl:
            LOGGER.info("Rejecting expired auth state (age %.1fs)", self._clock() - issued_at)
            return False
        return True

    def revoke_all(self) -> None:
        self._issued.clear()

    @property
    def outstanding(self) -> int:
        return len(self._issued)

    def _find(self, candidate: str) -> str | None:
        found: str | None = None
        for token in self._issued:
            if hmac.compare_digest(token.encode("utf-8"), candidate.encode("utf-8")):
                found = token
        return found
