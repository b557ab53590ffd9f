"""Command registry and the commands the runtime contributes."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
import logging
from typing import Any, Callable, Dict, List

from .panels.host import CallbackDisposable, Disposable
from .panels.lifecycle import PanelLifecycleManager
from .panels.registry import InstanceRegistry

__all__ = [
    "CommandRegistry",
    "CommandHandler",
    "CommandSet",
    "PanelCommandSet",
    "DevCommandSet",
    "NullCommandSet",
    "OPEN_PANEL_COMMAND",
    "TOGGLE_PANEL_COMMAND",
    "PLUS_BUTTON_COMMAND",
    "DUMP_REGISTRY_COMMAND",
]

LOGGER = logging.getLogger(__name__)

OPEN_PANEL_COMMAND = "companion.openPanel"
TOGGLE_PANEL_COMMAND = "companion.togglePanel"
PLUS_BUTTON_COMMAND = "companion.plusButtonClicked"
DUMP_REGISTRY_COMMAND = "companion.dev.dumpRegistry"

CommandHandler = Callable[..., Any]


class CommandRegistry:
    """Named commands the host (or the CLI) can execute."""

    def __init__(self) -> None:
        self._handlers: Dict[str, CommandHandler] = {}

    def register(self, command_id: str, handler: CommandHandler) -> Disposable:
        if command_id in self._handlers:
            raise ValueError(f"Command already registered: {command_id}")
        self._handlers[command_id] = handler
        return CallbackDisposable(lambda: self._handlers.pop(command_id, None))

    def has(self, command_id: str) -> bool:
        return command_id in self._handlers

    def command_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._handlers))

    async def execute(self, command_id: str, *args: Any) -> Any:
        handler = self._handlers.get(command_id)
        if handler is None:
            raise KeyError(f"Unknown command: {command_id}")
        LOGGER.debug("Executing command %s", command_id)
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result


class CommandSet(ABC):
    """A group of commands registered together and released together."""

    @abstractmethod
    def register(self, commands: CommandRegistry) -> List[Disposable]:
        """Register this set's handlers and return their disposables."""


class PanelCommandSet(CommandSet):
    def __init__(self, lifecycle: PanelLifecycleManager) -> None:
        self._lifecycle = lifecycle

    def register(self, commands: CommandRegistry) -> List[Disposable]:
        lifecycle = self._lifecycle
        return [
            commands.register(OPEN_PANEL_COMMAND, lambda *_args: lifecycle.reopen_panel()),
            commands.register(TOGGLE_PANEL_COMMAND, lambda *_args: lifecycle.toggle_panel()),
            commands.register(PLUS_BUTTON_COMMAND, lambda *_args: lifecycle.start_new_chat()),
        ]


class DevCommandSet(CommandSet):
    """Diagnostics available only when the runtime starts in dev mode."""

    def __init__(self, registry: InstanceRegistry) -> None:
        self._registry = registry

    def register(self, commands: CommandRegistry) -> List[Disposable]:
        return [commands.register(DUMP_REGISTRY_COMMAND, self.dump_registry)]

    def dump_registry(self) -> list[dict[str, Any]]:
        visible = self._registry.get_visible()
        snapshot = [
            {
                "id": instance.id,
                "created_at": instance.created_at.isoformat(),
                "visible": instance is visible,
            }
            for instance in self._registry.list_all()
        ]
        LOGGER.info("Registry snapshot: %s", snapshot)
        return snapshot


class NullCommandSet(CommandSet):
    def register(self, commands: CommandRegistry) -> List[Disposable]:
        return []
