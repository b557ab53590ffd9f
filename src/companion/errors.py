"""Exception types raised by the Companion runtime core."""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "CompanionError",
    "SchemeAlreadyRegisteredError",
    "PanelDisposalError",
    "AuthStateError",
]


class CompanionError(Exception):
    """Base class for every error the runtime raises on purpose."""


class SchemeAlreadyRegisteredError(CompanionError, RuntimeError):
    """A content provider already claimed the requested URI scheme."""

    def __init__(self, scheme: str) -> None:
        super().__init__(f"A content provider is already registered for scheme '{scheme}'")
        self.scheme = scheme


class PanelDisposalError(CompanionError):
    """One or more panels failed while being disposed.

    ``close_all`` logs this aggregate instead of raising it so a single
    misbehaving controller never keeps the other panels alive.
    """

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        ids = ", ".join(instance_id for instance_id, _ in failures)
        super().__init__(f"{len(failures)} panel(s) failed to dispose: {ids}")
        self.failures = tuple(failures)


class AuthStateError(CompanionError):
    """An auth callback carried a missing, unknown or already used state."""

    MISSING = "missing"
    MISMATCH = "mismatch"
    REUSED = "reused"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Auth state rejected ({reason})")
        self.reason = reason
