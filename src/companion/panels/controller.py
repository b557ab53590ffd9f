"""Controller seam used by surface instances, plus the default in-process controller."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from ..callbacks.validator import AuthStateValidator
from ..services.settings import redact_secret

__all__ = ["Controller", "PanelController", "AuthCredentials"]

LOGGER = logging.getLogger(__name__)


class Controller(Protocol):
    """Business-logic delegate owned by exactly one surface instance."""

    async def clear_task(self) -> None:  # pragma: no cover - protocol
        ...

    async def post_state_to_webview(self) -> None:  # pragma: no cover - protocol
        ...

    async def post_message_to_webview(self, event: Mapping[str, Any]) -> None:  # pragma: no cover
        ...

    async def handle_open_router_callback(self, code: str) -> None:  # pragma: no cover - protocol
        ...

    async def validate_auth_state(self, state: str | None) -> bool:  # pragma: no cover - protocol
        ...

    async def handle_auth_callback(self, token: str, api_key: str) -> None:  # pragma: no cover
        ...

    async def dispose(self) -> None:  # pragma: no cover - protocol
        ...


@dataclass(slots=True, frozen=True)
class AuthCredentials:
    token: str
    api_key: str

    def __repr__(self) -> str:
        return f"AuthCredentials(token={redact_secret(self.token)!r}, api_key={redact_secret(self.api_key)!r})"


class PanelController:
    """Minimal controller that keeps per-panel state in memory.

    Chat and provider logic live elsewhere; this class only tracks what the
    runtime core hands it so the app can run without them.
    """

    def __init__(self, *, validator: AuthStateValidator | None = None) -> None:
        self._validator = validator or AuthStateValidator()
        self.outbox: list[dict[str, Any]] = []
        self.task_id: str | None = None
        self.pending_exchange_codes: list[str] = []
        self.credentials: AuthCredentials | None = None
        self.disposed = False

    def begin_auth(self) -> str:
        """Issue the state value to embed in an outgoing sign-in URL."""

        return self._validator.issue()

    async def clear_task(self) -> None:
        self.task_id = None

    async def post_state_to_webview(self) -> None:
        await self.post_message_to_webview(
            {
                "type": "state",
                "state": {
                    "taskId": self.task_id,
                    "signedIn": self.credentials is not None,
                },
            }
        )

    async def post_message_to_webview(self, event: Mapping[str, Any]) -> None:
        if self.disposed:
            LOGGER.debug("Dropping %s message for a disposed controller", event.get("type"))
            return
        self.outbox.append(dict(event))

    async def handle_open_router_callback(self, code: str) -> None:
        self.pending_exchange_codes.append(code)
        await self.post_state_to_webview()

    async def validate_auth_state(self, state: str | None) -> bool:
        return self._validator.validate(state)

    async def handle_auth_callback(self, token: str, api_key: str) -> None:
        self.credentials = AuthCredentials(token=token, api_key=api_key)
        LOGGER.info("Stored credentials %r", self.credentials)
        await self.post_state_to_webview()

    async def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._validator.revoke_all()
        self.pending_exchange_codes.clear()
        self.credentials = None
        self.task_id = None
