"""Shared pytest fixtures."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from companion.panels.registry import InstanceRegistry
from companion.services.settings import Settings
from companion.ui.events import EventBus

from tests.helpers import StubHost


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(extension_root=tmp_path, lock_delay_seconds=0.0)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry(event_bus: EventBus) -> InstanceRegistry:
    return InstanceRegistry(event_bus=event_bus)


@pytest.fixture
def host() -> StubHost:
    return StubHost()
