"""Opening, closing and toggling Companion panels."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..services.settings import Settings
from .controller import Controller
from .host import LOCK_EDITOR_GROUP_COMMAND, EditorHost, HostPanel, IconPath, PanelOptions, ViewColumn
from .instance import SurfaceInstance
from .registry import InstanceRegistry

__all__ = ["PanelLifecycleManager", "ControllerFactory", "NEW_CHAT_MESSAGE"]

LOGGER = logging.getLogger(__name__)

ControllerFactory = Callable[[HostPanel], Controller]

NEW_CHAT_MESSAGE = {"type": "action", "action": "chatButtonClicked"}


class PanelLifecycleManager:
    """Keeps the registry in step with the panels the host actually shows.

    ``toggle_panel`` looks at registry cardinality rather than a separate
    open/closed flag, so the two can never disagree.
    """

    def __init__(
        self,
        host: EditorHost,
        registry: InstanceRegistry,
        controller_factory: ControllerFactory,
        settings: Settings,
    ) -> None:
        self._host = host
        self._registry = registry
        self._controller_factory = controller_factory
        self._settings = settings

    @property
    def registry(self) -> InstanceRegistry:
        return self._registry

    async def start(self) -> SurfaceInstance:
        """Open the default panel shown when the runtime activates."""

        return await self.open_panel()

    async def open_panel(self) -> SurfaceInstance:
        LOGGER.info("Opening %s panel beside the active editor", self._settings.panel_title)
        panel = self._host.create_panel(
            self._settings.view_type,
            self._settings.panel_title,
            ViewColumn.BESIDE,
            PanelOptions(
                enable_scripts=True,
                retain_context_when_hidden=True,
                local_resource_roots=(self._settings.extension_root,),
            ),
        )
        panel.icon_path = IconPath(light=self._settings.icon_light, dark=self._settings.icon_dark)
        try:
            controller = self._controller_factory(panel)
        except Exception:
            panel.dispose()
            raise
        instance = SurfaceInstance(panel=panel, controller=controller)
        self._registry.register(instance)
        await self._lock_editor_group()
        return instance

    async def toggle_panel(self) -> SurfaceInstance | None:
        if self._registry.count() > 0:
            await self._registry.close_all()
            return None
        return await self.open_panel()

    async def reopen_panel(self) -> SurfaceInstance:
        await self._registry.close_all()
        return await self.open_panel()

    async def start_new_chat(self) -> None:
        """Reset every open panel to an empty conversation."""

        for instance in self._registry.list_all():
            controller = instance.controller
            try:
                await controller.clear_task()
                await controller.post_state_to_webview()
                await controller.post_message_to_webview(dict(NEW_CHAT_MESSAGE))
            except Exception:
                LOGGER.exception("Failed to start a new chat in panel %s", instance.id)

    async def _lock_editor_group(self) -> None:
        # Keeps file navigation from replacing the panel in its group.
        try:
            if self._settings.lock_delay_seconds:
                await asyncio.sleep(self._settings.lock_delay_seconds)
            await self._host.execute_command(LOCK_EDITOR_GROUP_COMMAND)
        except Exception as exc:
            LOGGER.warning("Unable to lock the panel's editor group: %s", exc)
