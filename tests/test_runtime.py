"""Integration tests for runtime activation against a stub host."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from companion.callbacks.router import CallbackOutcome
from companion.commands import DUMP_REGISTRY_COMMAND, TOGGLE_PANEL_COMMAND
from companion.documents.virtual import build_virtual_document_uri
from companion.panels.controller import PanelController
from companion.runtime import CompanionRuntime
from companion.services.settings import Settings
from companion.ui.events import EventBus, PanelRegistered, VisiblePanelChanged
from tests.helpers import StubHost


def test_activation_opens_default_panel_and_registers_scheme(settings: Settings) -> None:
    host = StubHost()

    runtime = asyncio.run(CompanionRuntime.activate(host, settings))

    assert runtime.registry.count() == 1
    assert isinstance(runtime.registry.get_visible().controller, PanelController)
    assert runtime.content_providers.schemes() == (settings.diff_scheme,)
    uri = build_virtual_document_uri(settings.diff_scheme, "/orig.txt", "before")
    assert runtime.provide_text_document_content(uri) == "before"


def test_dev_commands_follow_settings_flag(settings: Settings) -> None:
    plain = asyncio.run(CompanionRuntime.activate(StubHost(), settings, open_default_panel=False))
    dev = asyncio.run(
        CompanionRuntime.activate(StubHost(), replace(settings, dev_mode=True), open_default_panel=False)
    )

    assert not plain.commands.has(DUMP_REGISTRY_COMMAND)
    assert dev.commands.has(DUMP_REGISTRY_COMMAND)


def test_auth_handshake_end_to_end(settings: Settings) -> None:
    host = StubHost()

    async def run():
        runtime = await CompanionRuntime.activate(host, settings)
        controller = runtime.registry.get_visible().controller
        state = controller.begin_auth()
        uri = f"vscode://acme.companion/auth?token=tok&state={state}&apiKey=key"
        first = await runtime.handle_uri(uri)
        second = await runtime.handle_uri(uri)
        return controller, first, second

    controller, first, second = asyncio.run(run())

    assert first is CallbackOutcome.FORWARDED
    assert second is CallbackOutcome.REJECTED
    assert controller.credentials.token == "tok"
    assert controller.credentials.api_key == "key"
    assert host.errors == ["Invalid auth state"]


def test_callback_after_toggle_close_has_no_target(settings: Settings) -> None:
    host = StubHost()

    async def run():
        runtime = await CompanionRuntime.activate(host, settings)
        await runtime.execute_command(TOGGLE_PANEL_COMMAND)
        return runtime, await runtime.handle_uri("vscode://acme.companion/openrouter?code=c")

    runtime, outcome = asyncio.run(run())

    assert outcome is CallbackOutcome.NO_TARGET
    assert runtime.registry.count() == 0
    assert host.errors == []


def test_deactivate_closes_panels_and_releases_registrations(settings: Settings) -> None:
    host = StubHost()

    async def run():
        runtime = await CompanionRuntime.activate(host, settings)
        await runtime.deactivate()
        return runtime

    runtime = asyncio.run(run())

    assert runtime.registry.count() == 0
    assert runtime.content_providers.schemes() == ()
    assert runtime.commands.command_ids() == ()
    assert host.panels[0].dispose_calls == 1


def test_supplied_event_bus_observes_default_panel(settings: Settings) -> None:
    bus: EventBus = EventBus()
    seen: list[object] = []
    bus.subscribe(PanelRegistered, seen.append)
    bus.subscribe(VisiblePanelChanged, seen.append)

    runtime = asyncio.run(CompanionRuntime.activate(StubHost(), settings, event_bus=bus))

    instance = runtime.registry.get_visible()
    assert runtime.event_bus is bus
    assert seen == [
        PanelRegistered(instance_id=instance.id, count=1),
        VisiblePanelChanged(instance_id=instance.id),
    ]
