"""Protocols describing the editor process that hosts Companion panels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol

__all__ = [
    "Disposable",
    "CallbackDisposable",
    "ViewColumn",
    "PanelOptions",
    "IconPath",
    "HostPanel",
    "EditorHost",
    "LOCK_EDITOR_GROUP_COMMAND",
]

LOCK_EDITOR_GROUP_COMMAND = "workbench.action.lockEditorGroup"


class Disposable(Protocol):
    def dispose(self) -> None:  # pragma: no cover - protocol
        ...


class CallbackDisposable:
    """Disposable that runs ``callback`` the first time it is disposed."""

    __slots__ = ("_callback",)

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback: Callable[[], None] | None = callback

    def dispose(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()

    @property
    def disposed(self) -> bool:
        return self._callback is None


class ViewColumn(Enum):
    """Where the host should place a new panel."""

    ACTIVE = "active"
    BESIDE = "beside"


@dataclass(slots=True, frozen=True)
class PanelOptions:
    """Capabilities requested for a new panel."""

    enable_scripts: bool = True
    retain_context_when_hidden: bool = True
    local_resource_roots: tuple[Path, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class IconPath:
    light: Path
    dark: Path


class HostPanel(Protocol):
    """A panel created by the host. Listeners fire on the event loop thread."""

    @property
    def visible(self) -> bool:  # pragma: no cover - protocol
        ...

    icon_path: IconPath | None

    def dispose(self) -> None:  # pragma: no cover - protocol
        ...

    def on_did_dispose(self, listener: Callable[[], None]) -> Disposable:  # pragma: no cover - protocol
        ...

    def on_did_change_view_state(
        self, listener: Callable[[bool], None]
    ) -> Disposable:  # pragma: no cover - protocol
        ...


class EditorHost(Protocol):
    """Services the runtime consumes from the surrounding editor."""

    def create_panel(
        self,
        view_type: str,
        title: str,
        column: ViewColumn,
        options: PanelOptions,
    ) -> HostPanel:  # pragma: no cover - protocol
        ...

    async def execute_command(self, command: str, *args: Any) -> Any:  # pragma: no cover - protocol
        ...

    def show_error_message(self, message: str) -> None:  # pragma: no cover - protocol
        ...
