"""Routes external callback URIs to the visible panel's controller."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections import OrderedDict
from enum import Enum
from typing import Protocol

from ..errors import AuthStateError
from ..panels.instance import SurfaceInstance
from ..panels.registry import InstanceRegistry
from ..services.settings import redact_secret
from ..ui.events import CallbackRejected, CallbackRouted, EventBus
from .request import CallbackRequest, CallbackRoute

__all__ = [
    "CallbackOutcome",
    "CallbackRouter",
    "ErrorNotifier",
    "INVALID_STATE_MESSAGE",
    "DEFAULT_CONSUMED_STATE_LIMIT",
]

LOGGER = logging.getLogger(__name__)

INVALID_STATE_MESSAGE = "Invalid auth state"
DEFAULT_CONSUMED_STATE_LIMIT = 1024


class CallbackOutcome(str, Enum):
    IGNORED = "ignored"
    NO_TARGET = "no_target"
    REJECTED = "rejected"
    INCOMPLETE = "incomplete"
    FORWARDED = "forwarded"


class ErrorNotifier(Protocol):
    def show_error_message(self, message: str) -> None:  # pragma: no cover - protocol
        ...


class CallbackRouter:
    """Validates and forwards out-of-band callbacks one at a time.

    Callbacks are serialised: each one, including consuming its state, runs
    to completion before the next starts. The most recent
    ``consumed_state_limit`` consumed states are remembered and rejected on
    any later presentation; older ones still fail at the controller, whose
    validator accepts each state once.
    """

    def __init__(
        self,
        registry: InstanceRegistry,
        notifier: ErrorNotifier,
        *,
        event_bus: EventBus | None = None,
        consumed_state_limit: int = DEFAULT_CONSUMED_STATE_LIMIT,
    ) -> None:
        if consumed_state_limit < 1:
            raise ValueError("consumed_state_limit must be positive")
        self._registry = registry
        self._notifier = notifier
        self._event_bus = event_bus
        self._lock = asyncio.Lock()
        self._consumed_states: OrderedDict[str, None] = OrderedDict()
        self._consumed_state_limit = consumed_state_limit

    @property
    def consumed_state_count(self) -> int:
        return len(self._consumed_states)

    async def route(self, request: CallbackRequest | str) -> CallbackOutcome:
        if isinstance(request, str):
            request = CallbackRequest.from_uri(request)
        async with self._lock:
            outcome, instance = await self._route(request)
        LOGGER.info("Callback %s -> %s", request.path, outcome.value)
        self._publish(
            CallbackRouted(
                route=request.path,
                outcome=outcome.value,
                instance_id=instance.id if instance is not None else None,
            )
        )
        return outcome

    async def handle_uri(self, uri: str) -> CallbackOutcome:
        return await self.route(CallbackRequest.from_uri(uri))

    async def _route(
        self, request: CallbackRequest
    ) -> tuple[CallbackOutcome, SurfaceInstance | None]:
        route = request.route
        if route is None:
            LOGGER.debug("Ignoring callback for unknown path %s", request.path)
            return CallbackOutcome.IGNORED, None

        instance = self._registry.get_visible()
        if instance is None:
            LOGGER.debug("No visible panel to receive %s callback", request.path)
            return CallbackOutcome.NO_TARGET, None

        if route.requires_state:
            try:
                await self._consume_state(instance, request.get("state"))
            except AuthStateError as exc:
                self._reject(request, instance, exc)
                return CallbackOutcome.REJECTED, instance
            if not self._registry.contains(instance):
                LOGGER.info("Panel %s closed while validating auth state", instance.id)
                return CallbackOutcome.NO_TARGET, instance

        values = [request.get(name) for name in route.required_params]
        if not all(values):
            LOGGER.info("Callback %s missing %s", request.path, ", ".join(route.required_params))
            return CallbackOutcome.INCOMPLETE, instance

        controller = instance.controller
        if route is CallbackRoute.AUTH_COMPLETION:
            token, api_key = values
            LOGGER.debug(
                "Forwarding auth callback (token=%s, apiKey=%s) to %s",
                redact_secret(token),
                redact_secret(api_key),
                instance.id,
            )
            await controller.handle_auth_callback(token, api_key)
        else:
            (code,) = values
            await controller.handle_open_router_callback(code)
        return CallbackOutcome.FORWARDED, instance

    async def _consume_state(self, instance: SurfaceInstance, state: str | None) -> None:
        if not state:
            raise AuthStateError(AuthStateError.MISSING)
        digest = hashlib.sha256(state.encode("utf-8")).hexdigest()
        if digest in self._consumed_states:
            raise AuthStateError(AuthStateError.REUSED)
        try:
            accepted = await instance.controller.validate_auth_state(state)
        except Exception as exc:
            LOGGER.warning("Auth state check failed in panel %s: %s", instance.id, exc, exc_info=exc)
            raise AuthStateError(AuthStateError.MISMATCH) from exc
        if not accepted:
            raise AuthStateError(AuthStateError.MISMATCH)
        self._remember(digest)

    def _remember(self, digest: str) -> None:
        self._consumed_states[digest] = None
        while len(self._consumed_states) > self._consumed_state_limit:
            self._consumed_states.popitem(last=False)

    def _reject(self, request: CallbackRequest, instance: SurfaceInstance, exc: AuthStateError) -> None:
        LOGGER.warning("Rejected %s callback for panel %s: %s", request.path, instance.id, exc)
        self._notifier.show_error_message(INVALID_STATE_MESSAGE)
        self._publish(
            CallbackRejected(route=request.path, reason=exc.reason, instance_id=instance.id)
        )

    def _publish(self, event) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)
