"""PySide6 implementation of the editor host: panels are dock widgets."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from PySide6.QtCore import Qt
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QDockWidget, QLabel, QMainWindow

from ..panels.host import (
    LOCK_EDITOR_GROUP_COMMAND,
    CallbackDisposable,
    Disposable,
    IconPath,
    PanelOptions,
    ViewColumn,
)
from .events import CallbackRouted, EventBus, PanelRegistered, PanelUnregistered, VisiblePanelChanged

__all__ = ["QtHostPanel", "QtEditorHost"]

LOGGER = logging.getLogger(__name__)

_ERROR_TIMEOUT_MS = 10_000
_NOTICE_TIMEOUT_MS = 5_000
_ROUTED_MESSAGES = {
    "/auth": "Signed in",
    "/openrouter": "Provider connected",
}


class QtHostPanel:
    """Wraps a :class:`QDockWidget` behind the ``HostPanel`` protocol."""

    def __init__(self, dock: QDockWidget, options: PanelOptions) -> None:
        self.dock = dock
        self.options = options
        self._icon_path: IconPath | None = None
        self._dispose_listeners: List[Callable[[], None]] = []
        self._view_state_listeners: List[Callable[[bool], None]] = []
        self._disposed = False
        self._locked = False
        dock.visibilityChanged.connect(self._emit_view_state)
        dock.destroyed.connect(self._on_destroyed)

    @property
    def visible(self) -> bool:
        if self._disposed:
            return False
        return self.dock.isVisible()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def icon_path(self) -> IconPath | None:
        return self._icon_path

    @icon_path.setter
    def icon_path(self, value: IconPath | None) -> None:
        self._icon_path = value
        if value is not None and not self._disposed:
            # Qt docks carry a single icon; use the light variant.
            self.dock.setWindowIcon(QIcon(str(value.light)))

    def lock(self) -> None:
        features = self.dock.features()
        features &= ~QDockWidget.DockWidgetFeature.DockWidgetMovable
        features &= ~QDockWidget.DockWidgetFeature.DockWidgetFloatable
        self.dock.setFeatures(features)
        self._locked = True

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        try:
            self.dock.visibilityChanged.disconnect(self._emit_view_state)
        except (RuntimeError, TypeError):
            pass
        self.dock.hide()
        self.dock.deleteLater()
        self._fire_dispose()

    def on_did_dispose(self, listener: Callable[[], None]) -> Disposable:
        self._dispose_listeners.append(listener)
        return CallbackDisposable(lambda: _discard(self._dispose_listeners, listener))

    def on_did_change_view_state(self, listener: Callable[[bool], None]) -> Disposable:
        self._view_state_listeners.append(listener)
        return CallbackDisposable(lambda: _discard(self._view_state_listeners, listener))

    def _emit_view_state(self, visible: bool) -> None:
        for listener in list(self._view_state_listeners):
            listener(bool(visible))

    def _on_destroyed(self, *_args: Any) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._fire_dispose()

    def _fire_dispose(self) -> None:
        listeners, self._dispose_listeners = self._dispose_listeners, []
        self._view_state_listeners.clear()
        for listener in listeners:
            try:
                listener()
            except Exception:
                LOGGER.exception("Panel dispose listener failed")


class QtEditorHost:
    """Hosts Companion panels inside a :class:`QMainWindow`.

    Once bound to the runtime's event bus, a permanent status bar label
    tracks how many panels are open and whether one is in front, and
    completed sign-ins are announced on the status bar.
    """

    def __init__(self, window: QMainWindow) -> None:
        self._window = window
        self._panels: List[QtHostPanel] = []
        self._commands: Dict[str, Callable[..., Any]] = {
            LOCK_EDITOR_GROUP_COMMAND: self._lock_latest_panel,
        }
        self._open_count = 0
        self._has_visible = False
        self._status_label = QLabel(self._status_text())
        self._status_label.setObjectName("companion-status-panels")
        self._status_label.setContentsMargins(8, 0, 8, 0)
        window.statusBar().addPermanentWidget(self._status_label)

    @property
    def window(self) -> QMainWindow:
        return self._window

    @property
    def status_text(self) -> str:
        return self._status_label.text()

    def bind_event_bus(self, bus: EventBus) -> None:
        bus.subscribe(PanelRegistered, self._on_panel_count_changed)
        bus.subscribe(PanelUnregistered, self._on_panel_count_changed)
        bus.subscribe(VisiblePanelChanged, self._on_visible_panel_changed)
        bus.subscribe(CallbackRouted, self._on_callback_routed)

    def panels(self) -> tuple[QtHostPanel, ...]:
        return tuple(panel for panel in self._panels if not panel.disposed)

    def create_panel(
        self,
        view_type: str,
        title: str,
        column: ViewColumn,
        options: PanelOptions,
    ) -> QtHostPanel:
        dock = QDockWidget(title, self._window)
        dock.setObjectName(f"{view_type}-{len(self._panels) + 1}")
        dock.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose, True)
        placeholder = QLabel(title, dock)
        placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        dock.setWidget(placeholder)
        area = (
            Qt.DockWidgetArea.RightDockWidgetArea
            if column is ViewColumn.BESIDE
            else Qt.DockWidgetArea.LeftDockWidgetArea
        )
        self._window.addDockWidget(area, dock)
        panel = QtHostPanel(dock, options)
        self._panels.append(panel)
        dock.show()
        return panel

    async def execute_command(self, command: str, *args: Any) -> Any:
        handler = self._commands.get(command)
        if handler is None:
            raise KeyError(f"Unsupported host command: {command}")
        return handler(*args)

    def show_error_message(self, message: str) -> None:
        LOGGER.error("%s", message)
        status_bar = self._window.statusBar()
        status_bar.showMessage(message, _ERROR_TIMEOUT_MS)

    def _on_panel_count_changed(self, event: PanelRegistered | PanelUnregistered) -> None:
        self._open_count = event.count
        self._refresh_status()

    def _on_visible_panel_changed(self, event: VisiblePanelChanged) -> None:
        self._has_visible = event.instance_id is not None
        self._refresh_status()

    def _on_callback_routed(self, event: CallbackRouted) -> None:
        if event.outcome != "forwarded":
            return
        message = _ROUTED_MESSAGES.get(event.route)
        if message:
            self._window.statusBar().showMessage(message, _NOTICE_TIMEOUT_MS)

    def _refresh_status(self) -> None:
        self._status_label.setText(self._status_text())

    def _status_text(self) -> str:
        if self._open_count == 0:
            return "No panels open"
        noun = "panel" if self._open_count == 1 else "panels"
        suffix = "" if self._has_visible else ", none in front"
        return f"{self._open_count} {noun} open{suffix}"

    def _lock_latest_panel(self) -> None:
        live = self.panels()
        if not live:
            LOGGER.debug("No panel to lock")
            return
        live[-1].lock()


def _discard(items: list, item: Any) -> None:
    try:
        items.remove(item)
    except ValueError:
        pass
