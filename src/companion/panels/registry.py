"""Process-wide catalog of live surface instances."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterator, List

from ..errors import PanelDisposalError
from ..ui.events import EventBus, PanelRegistered, PanelUnregistered, VisiblePanelChanged
from .host import Disposable
from .instance import SurfaceInstance

__all__ = ["InstanceRegistry"]

LOGGER = logging.getLogger(__name__)


class InstanceRegistry:
    """Tracks open panels and which one is in the foreground.

    The visible pointer is maintained from host view-state notifications, so
    :meth:`get_visible` never scans. Each registered instance gets its own
    subscriptions which the registry tears down on :meth:`unregister`.
    """

    def __init__(self, *, event_bus: EventBus | None = None) -> None:
        self._instances: Dict[str, SurfaceInstance] = {}
        self._subscriptions: Dict[str, List[Disposable]] = {}
        self._visible: SurfaceInstance | None = None
        self._draining: Dict[str, SurfaceInstance] = {}
        self._event_bus = event_bus

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------
    def register(self, instance: SurfaceInstance) -> None:
        if instance.id in self._instances:
            return
        if not instance.alive:
            raise ValueError(f"Cannot register disposed instance {instance.id}")
        self._instances[instance.id] = instance
        view_state = instance.panel.on_did_change_view_state(
            lambda visible: self._on_view_state_changed(instance, visible)
        )
        instance.add_dispose_listener(self.unregister)
        self._subscriptions[instance.id] = [view_state]
        LOGGER.debug("Registered panel %s (%d live)", instance.id, len(self._instances))
        self._publish(PanelRegistered(instance_id=instance.id, count=len(self._instances)))
        if instance.panel.visible:
            self._set_visible(instance)

    def unregister(self, instance: SurfaceInstance) -> None:
        if self._instances.get(instance.id) is not instance:
            return
        del self._instances[instance.id]
        for subscription in self._subscriptions.pop(instance.id, []):
            subscription.dispose()
        instance.remove_dispose_listener(self.unregister)
        self._prune_draining()
        if instance.disposing and not instance.disposed:
            self._draining[instance.id] = instance
        LOGGER.debug("Unregistered panel %s (%d live)", instance.id, len(self._instances))
        self._publish(PanelUnregistered(instance_id=instance.id, count=len(self._instances)))
        if self._visible is instance:
            self._set_visible(None)

    def contains(self, instance: SurfaceInstance) -> bool:
        return self._instances.get(instance.id) is instance and instance.alive

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_visible(self) -> SurfaceInstance | None:
        instance = self._visible
        if instance is None or not instance.alive:
            return None
        return instance

    def list_all(self) -> tuple[SurfaceInstance, ...]:
        return tuple(instance for instance in self._instances.values() if instance.alive)

    def get(self, instance_id: str) -> SurfaceInstance:
        instance = self._instances.get(instance_id)
        if instance is None or not instance.alive:
            raise KeyError(f"Unknown instance_id: {instance_id}")
        return instance

    def count(self) -> int:
        return len(self.list_all())

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[SurfaceInstance]:
        return iter(self.list_all())

    # ------------------------------------------------------------------
    # Bulk teardown
    # ------------------------------------------------------------------
    async def close_all(self) -> None:
        """Dispose every live instance and wait until all of them settled.

        Disposals run independently; failures are logged and do not stop
        the others. Every instance leaves the registry either way. Panels the
        host already closed whose controller is still being released are
        awaited too.
        """

        live = list(self._instances.values())
        instances = live + [pending for pending in self._draining.values() if pending not in live]
        if not instances:
            return
        LOGGER.info("Closing %d panel(s)", len(live))
        results = await asyncio.gather(
            *(instance.dispose() for instance in instances), return_exceptions=True
        )
        failures: list[tuple[str, BaseException]] = []
        for instance, result in zip(instances, results):
            if isinstance(result, BaseException):
                failures.append((instance.id, result))
            # A failing listener chain must not leave the entry behind.
            self.unregister(instance)
            self._draining.pop(instance.id, None)
        if failures:
            error = PanelDisposalError(failures)
            LOGGER.warning("%s", error)
            for instance_id, exc in failures:
                LOGGER.debug("Disposal of %s failed", instance_id, exc_info=exc)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------
    def _on_view_state_changed(self, instance: SurfaceInstance, visible: bool) -> None:
        if not self.contains(instance):
            return
        if visible:
            self._set_visible(instance)
        elif self._visible is instance:
            self._set_visible(None)

    def _set_visible(self, instance: SurfaceInstance | None) -> None:
        if self._visible is instance:
            return
        self._visible = instance
        self._publish(VisiblePanelChanged(instance_id=instance.id if instance else None))

    def _prune_draining(self) -> None:
        for instance_id in [key for key, item in self._draining.items() if item.disposed]:
            del self._draining[instance_id]

    def _publish(self, event) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)
