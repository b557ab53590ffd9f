"""Tests for runtime settings and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from companion.services.settings import DEFAULT_DIFF_SCHEME, Settings, load_settings, redact_secret


def test_defaults_without_environment() -> None:
    settings = load_settings(env={})

    assert settings.panel_title == "Companion"
    assert settings.diff_scheme == DEFAULT_DIFF_SCHEME
    assert settings.dev_mode is False
    assert settings.lock_delay_seconds == pytest.approx(0.1)


def test_environment_overrides_are_coerced(tmp_path: Path) -> None:
    settings = load_settings(
        env={
            "COMPANION_DEV_MODE": "true",
            "COMPANION_LOCK_DELAY": "0.5",
            "COMPANION_EXTENSION_ROOT": str(tmp_path),
            "COMPANION_PANEL_TITLE": "Helper",
        }
    )

    assert settings.dev_mode is True
    assert settings.lock_delay_seconds == pytest.approx(0.5)
    assert settings.extension_root == tmp_path
    assert settings.panel_title == "Helper"
    assert settings.icon_dark == tmp_path / "assets" / "icons" / "robot_panel_dark.png"


def test_invalid_float_environment_override_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING"):
        settings = load_settings(env={"COMPANION_LOCK_DELAY": "soon"})

    assert settings.lock_delay_seconds == Settings().lock_delay_seconds
    assert "not a valid float" in caplog.text


def test_explicit_overrides_win_over_environment() -> None:
    settings = load_settings(env={"COMPANION_DEV_MODE": "1"}, overrides={"dev_mode": False, "unknown": 1})

    assert settings.dev_mode is False


def test_invalid_explicit_override_raises() -> None:
    with pytest.raises(ValueError):
        load_settings(env={}, overrides={"lock_delay_seconds": -1})


def test_invalid_scheme_raises() -> None:
    with pytest.raises(ValueError):
        load_settings(env={"COMPANION_DIFF_SCHEME": "bad:scheme"})


def test_settings_are_immutable() -> None:
    settings = Settings()

    with pytest.raises(AttributeError):
        settings.diff_scheme = "changed"  # type: ignore[misc]


def test_redact_secret() -> None:
    assert redact_secret("") == ""
    assert redact_secret("abc") == "***"
    assert redact_secret("sk-123456") == "sk*****56"
