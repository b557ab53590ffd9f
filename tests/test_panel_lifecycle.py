"""Tests for opening, toggling and reopening panels."""

from __future__ import annotations

import asyncio
import itertools

import pytest

from companion.panels.host import LOCK_EDITOR_GROUP_COMMAND, ViewColumn
from companion.panels.lifecycle import NEW_CHAT_MESSAGE, PanelLifecycleManager
from companion.panels.registry import InstanceRegistry
from companion.services.settings import Settings
from tests.helpers import RecordingController, StubHost


def _make_manager(host: StubHost, registry: InstanceRegistry, settings: Settings) -> PanelLifecycleManager:
    return PanelLifecycleManager(host, registry, lambda _panel: RecordingController(), settings)


def test_open_panel_requests_scripted_retained_panel(
    host: StubHost, registry: InstanceRegistry, settings: Settings
) -> None:
    manager = _make_manager(host, registry, settings)

    instance = asyncio.run(manager.open_panel())

    view_type, title, column, options = host.created[0]
    assert view_type == settings.view_type
    assert title == "Companion"
    assert column is ViewColumn.BESIDE
    assert options.enable_scripts is True
    assert options.retain_context_when_hidden is True
    assert options.local_resource_roots == (settings.extension_root,)
    assert instance.panel.icon_path.light == settings.extension_root / "assets" / "icons" / "robot_panel_light.png"
    assert instance.panel.icon_path.dark == settings.extension_root / "assets" / "icons" / "robot_panel_dark.png"
    assert registry.list_all() == (instance,)
    assert registry.get_visible() is instance


def test_open_panel_locks_editor_group(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    asyncio.run(manager.open_panel())

    assert host.commands == [(LOCK_EDITOR_GROUP_COMMAND, ())]


def test_lock_failure_is_logged_not_raised(
    registry: InstanceRegistry, settings: Settings, caplog: pytest.LogCaptureFixture
) -> None:
    host = StubHost(fail_commands=True)
    manager = _make_manager(host, registry, settings)

    with caplog.at_level("WARNING"):
        instance = asyncio.run(manager.open_panel())

    assert registry.get_visible() is instance
    assert "Unable to lock" in caplog.text


def test_open_panel_disposes_panel_when_controller_factory_fails(
    host: StubHost, registry: InstanceRegistry, settings: Settings
) -> None:
    def failing_factory(_panel):
        raise RuntimeError("no controller")

    manager = PanelLifecycleManager(host, registry, failing_factory, settings)

    with pytest.raises(RuntimeError):
        asyncio.run(manager.open_panel())

    assert registry.count() == 0
    assert host.panels[0].dispose_calls == 1


def test_toggle_opens_when_empty_and_closes_when_populated(
    host: StubHost, registry: InstanceRegistry, settings: Settings
) -> None:
    manager = _make_manager(host, registry, settings)

    opened = asyncio.run(manager.toggle_panel())
    assert opened is not None
    assert registry.count() == 1

    closed = asyncio.run(manager.toggle_panel())
    assert closed is None
    assert registry.count() == 0
    assert opened.panel.dispose_calls == 1


def test_toggle_closes_every_open_panel(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    async def run() -> None:
        await manager.open_panel()
        await manager.open_panel()
        await manager.toggle_panel()

    asyncio.run(run())

    assert registry.count() == 0
    assert all(panel.dispose_calls == 1 for panel in host.panels)


def test_reopen_leaves_exactly_one_fresh_panel(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    async def run():
        await manager.open_panel()
        await manager.open_panel()
        return await manager.reopen_panel()

    fresh = asyncio.run(run())

    assert registry.list_all() == (fresh,)
    assert registry.get_visible() is fresh
    assert [panel.dispose_calls for panel in host.panels] == [1, 1, 0]


def test_toggle_followed_by_open_does_not_race(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    async def run():
        await manager.open_panel()
        await manager.toggle_panel()
        return await manager.open_panel()

    latest = asyncio.run(run())

    assert registry.list_all() == (latest,)


@pytest.mark.parametrize("sequence", list(itertools.product(("open", "toggle", "close"), repeat=3)))
def test_cardinality_never_holds_duplicates(
    sequence: tuple[str, ...], host: StubHost, registry: InstanceRegistry, settings: Settings
) -> None:
    manager = _make_manager(host, registry, settings)
    actions = {
        "open": manager.open_panel,
        "toggle": manager.toggle_panel,
        "close": registry.close_all,
    }

    async def run() -> None:
        for step in sequence:
            before = registry.count()
            await actions[step]()
            ids = [instance.id for instance in registry.list_all()]
            assert len(ids) == len(set(ids))
            if step == "toggle":
                assert registry.count() == (1 if before == 0 else 0)
            visible = registry.get_visible()
            assert visible is None or visible in registry.list_all()

    asyncio.run(run())


def test_start_opens_exactly_one_panel(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    asyncio.run(manager.start())

    assert registry.count() == 1
    assert len(host.created) == 1


def test_start_new_chat_resets_every_panel(host: StubHost, registry: InstanceRegistry, settings: Settings) -> None:
    manager = _make_manager(host, registry, settings)

    async def run():
        first = await manager.open_panel()
        second = await manager.open_panel()
        await manager.start_new_chat()
        return first, second

    first, second = asyncio.run(run())

    for instance in (first, second):
        assert instance.controller.calls == [
            ("clear_task", ()),
            ("post_state_to_webview", ()),
            ("post_message_to_webview", (NEW_CHAT_MESSAGE,)),
        ]


def test_start_new_chat_continues_after_controller_failure(
    host: StubHost, registry: InstanceRegistry, settings: Settings
) -> None:
    class _Broken(RecordingController):
        async def clear_task(self) -> None:
            raise RuntimeError("boom")

    controllers = iter([_Broken(), RecordingController()])
    manager = PanelLifecycleManager(host, registry, lambda _panel: next(controllers), settings)

    async def run():
        await manager.open_panel()
        healthy = await manager.open_panel()
        await manager.start_new_chat()
        return healthy

    healthy = asyncio.run(run())

    assert healthy.controller.names() == ["clear_task", "post_state_to_webview", "post_message_to_webview"]
