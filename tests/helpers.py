"""Shared test stubs for the host, panels and controllers.

Import from here instead of re-declaring these in individual test modules.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from companion.callbacks.validator import AuthStateValidator
from companion.panels.host import CallbackDisposable, IconPath, PanelOptions, ViewColumn


class StubPanel:
    """In-memory ``HostPanel`` whose visibility tests drive by hand."""

    def __init__(self, *, visible: bool = True) -> None:
        self._visible = visible
        self.icon_path: IconPath | None = None
        self.dispose_calls = 0
        self._dispose_listeners: list[Callable[[], None]] = []
        self._view_listeners: list[Callable[[bool], None]] = []

    @property
    def visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        for listener in list(self._view_listeners):
            listener(visible)

    def dispose(self) -> None:
        self.dispose_calls += 1
        self._visible = False
        for listener in list(self._dispose_listeners):
            listener()

    def close_by_user(self) -> None:
        """Simulate the user closing the panel from the host UI."""

        self.dispose()

    def on_did_dispose(self, listener: Callable[[], None]) -> CallbackDisposable:
        self._dispose_listeners.append(listener)
        return CallbackDisposable(lambda: self._dispose_listeners.remove(listener))

    def on_did_change_view_state(self, listener: Callable[[bool], None]) -> CallbackDisposable:
        self._view_listeners.append(listener)
        return CallbackDisposable(lambda: self._view_listeners.remove(listener))

    @property
    def view_listener_count(self) -> int:
        return len(self._view_listeners)


class StubHost:
    """Records panel creation, commands and error notifications."""

    def __init__(self, *, fail_commands: bool = False) -> None:
        self.panels: list[StubPanel] = []
        self.created: list[tuple[str, str, ViewColumn, PanelOptions]] = []
        self.commands: list[tuple[str, tuple[Any, ...]]] = []
        self.errors: list[str] = []
        self.fail_commands = fail_commands

    def create_panel(
        self, view_type: str, title: str, column: ViewColumn, options: PanelOptions
    ) -> StubPanel:
        panel = StubPanel(visible=True)
        # A new panel takes focus from whichever one was visible before.
        for other in self.panels:
            if other.visible:
                other.set_visible(False)
        self.panels.append(panel)
        self.created.append((view_type, title, column, options))
        return panel

    async def execute_command(self, command: str, *args: Any) -> Any:
        self.commands.append((command, args))
        if self.fail_commands:
            raise RuntimeError(f"command {command} failed")
        return None

    def show_error_message(self, message: str) -> None:
        self.errors.append(message)


class RecordingController:
    """Controller stub that records every call the runtime makes."""

    def __init__(self, *, validator: AuthStateValidator | None = None, fail_dispose: bool = False) -> None:
        self.validator = validator or AuthStateValidator()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.dispose_calls = 0
        self.fail_dispose = fail_dispose

    async def clear_task(self) -> None:
        self.calls.append(("clear_task", ()))

    async def post_state_to_webview(self) -> None:
        self.calls.append(("post_state_to_webview", ()))

    async def post_message_to_webview(self, event: Mapping[str, Any]) -> None:
        self.calls.append(("post_message_to_webview", (dict(event),)))

    async def handle_open_router_callback(self, code: str) -> None:
        self.calls.append(("handle_open_router_callback", (code,)))

    async def validate_auth_state(self, state: str | None) -> bool:
        self.calls.append(("validate_auth_state", (state,)))
        return self.validator.validate(state)

    async def handle_auth_callback(self, token: str, api_key: str) -> None:
        self.calls.append(("handle_auth_callback", (token, api_key)))

    async def dispose(self) -> None:
        self.dispose_calls += 1
        if self.fail_dispose:
            raise RuntimeError("controller refused to dispose")

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def forwarded(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]
