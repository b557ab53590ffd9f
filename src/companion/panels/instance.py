"""Surface instances: one open panel bound to the controller it owns."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List

from .controller import Controller
from .host import Disposable, HostPanel

__all__ = ["SurfaceInstance", "DisposeListener"]

LOGGER = logging.getLogger(__name__)

DisposeListener = Callable[["SurfaceInstance"], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_instance_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class SurfaceInstance:
    """An open panel and its controller.

    ``dispose`` is idempotent: concurrent and repeated calls await the same
    teardown. Disposal starts synchronously, whether requested here or by the
    host closing the panel: the instance stops being ``alive`` and its dispose
    listeners run before anything is awaited, so it is never handed out
    half-disposed. Only the controller release happens afterwards.
    """

    panel: HostPanel
    controller: Controller
    id: str = field(default_factory=_generate_instance_id)
    created_at: datetime = field(default_factory=_utcnow)
    alive: bool = True
    _dispose_listeners: List[DisposeListener] = field(default_factory=list, repr=False)
    _disposal: asyncio.Future[None] | None = field(default=None, repr=False)
    _closing: bool = field(default=False, repr=False)
    _panel_disposed: bool = field(default=False, repr=False)
    _panel_subscription: Disposable | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._panel_subscription = self.panel.on_did_dispose(self._on_panel_disposed)

    def add_dispose_listener(self, listener: DisposeListener) -> None:
        self._dispose_listeners.append(listener)

    def remove_dispose_listener(self, listener: DisposeListener) -> None:
        try:
            self._dispose_listeners.remove(listener)
        except ValueError:
            pass

    @property
    def disposing(self) -> bool:
        return self._closing

    @property
    def disposed(self) -> bool:
        return self._disposal is not None and self._disposal.done()

    async def dispose(self) -> None:
        if self._disposal is None:
            self._detach()
            self._disposal = asyncio.ensure_future(self._release())
        await self._disposal

    def _detach(self) -> None:
        # Leave the registry synchronously; only the controller release is async.
        if self._closing:
            return
        self._closing = True
        self.alive = False
        if self._panel_subscription is not None:
            self._panel_subscription.dispose()
            self._panel_subscription = None
        listeners, self._dispose_listeners = self._dispose_listeners, []
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                LOGGER.exception("Dispose listener failed for panel %s", self.id)

    async def _release(self) -> None:
        try:
            await self.controller.dispose()
        finally:
            if not self._panel_disposed:
                self._panel_disposed = True
                self.panel.dispose()

    def _on_panel_disposed(self) -> None:
        # The host closed the panel (user action); release the rest.
        self._panel_disposed = True
        if self._closing:
            return
        self._detach()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                asyncio.run(self.dispose())
            except Exception as exc:
                LOGGER.warning("Panel %s failed to dispose cleanly: %s", self.id, exc, exc_info=exc)
            return
        self._disposal = loop.create_task(self._release())
        self._disposal.add_done_callback(self._log_disposal_failure)

    def _log_disposal_failure(self, task: asyncio.Future[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning("Panel %s failed to dispose cleanly: %s", self.id, exc, exc_info=exc)
