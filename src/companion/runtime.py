"""Activation glue wiring the registry, lifecycle, router and providers together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List

from .callbacks.router import CallbackOutcome, CallbackRouter
from .commands import CommandRegistry, CommandSet, DevCommandSet, NullCommandSet, PanelCommandSet
from .documents.virtual import ContentProviderRegistry, VirtualDocumentProvider
from .panels.controller import PanelController
from .panels.host import Disposable, EditorHost, HostPanel
from .panels.lifecycle import ControllerFactory, PanelLifecycleManager
from .panels.registry import InstanceRegistry
from .services.settings import Settings
from .ui.events import EventBus

__all__ = ["CompanionRuntime", "default_controller_factory"]

LOGGER = logging.getLogger(__name__)


def default_controller_factory(_panel: HostPanel) -> PanelController:
    return PanelController()


@dataclass
class CompanionRuntime:
    """Everything the runtime owns between activation and deactivation."""

    host: EditorHost
    settings: Settings
    event_bus: EventBus
    registry: InstanceRegistry
    lifecycle: PanelLifecycleManager
    router: CallbackRouter
    content_providers: ContentProviderRegistry
    commands: CommandRegistry
    subscriptions: List[Disposable] = field(default_factory=list)

    @classmethod
    async def activate(
        cls,
        host: EditorHost,
        settings: Settings,
        *,
        controller_factory: ControllerFactory | None = None,
        content_providers: ContentProviderRegistry | None = None,
        commands: CommandRegistry | None = None,
        event_bus: EventBus | None = None,
        open_default_panel: bool = True,
    ) -> "CompanionRuntime":
        """Wire the runtime against ``host`` and open the default panel.

        Pass ``event_bus`` to observe activation itself, such as the default
        panel being registered.
        """

        LOGGER.info("Companion runtime activating (dev_mode=%s)", settings.dev_mode)
        event_bus = event_bus if event_bus is not None else EventBus()
        registry = InstanceRegistry(event_bus=event_bus)
        lifecycle = PanelLifecycleManager(
            host,
            registry,
            controller_factory or default_controller_factory,
            settings,
        )
        runtime = cls(
            host=host,
            settings=settings,
            event_bus=event_bus,
            registry=registry,
            lifecycle=lifecycle,
            router=CallbackRouter(registry, host, event_bus=event_bus),
            content_providers=content_providers or ContentProviderRegistry(),
            commands=commands or CommandRegistry(),
        )
        runtime.subscriptions.append(
            runtime.content_providers.register(settings.diff_scheme, VirtualDocumentProvider())
        )
        for command_set in runtime._command_sets():
            runtime.subscriptions.extend(command_set.register(runtime.commands))
        if open_default_panel:
            await lifecycle.start()
        return runtime

    def _command_sets(self) -> list[CommandSet]:
        dev_commands: CommandSet = (
            DevCommandSet(self.registry) if self.settings.dev_mode else NullCommandSet()
        )
        return [PanelCommandSet(self.lifecycle), dev_commands]

    async def handle_uri(self, uri: str) -> CallbackOutcome:
        return await self.router.route(uri)

    def provide_text_document_content(self, uri: str) -> str:
        return self.content_providers.provide(uri)

    async def execute_command(self, command_id: str, *args: Any) -> Any:
        return await self.commands.execute(command_id, *args)

    async def deactivate(self) -> None:
        await self.registry.close_all()
        while self.subscriptions:
            self.subscriptions.pop().dispose()
        self.event_bus.clear()
        LOGGER.info("Companion runtime deactivated")
