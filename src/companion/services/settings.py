"""Runtime settings and environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["Settings", "load_settings", "redact_secret", "DEFAULT_DIFF_SCHEME"]

LOGGER = logging.getLogger(__name__)
DEFAULT_DIFF_SCHEME = "companion-diff"
_ENV_OVERRIDES: Mapping[str, str] = {
    "COMPANION_PANEL_TITLE": "panel_title",
    "COMPANION_VIEW_TYPE": "view_type",
    "COMPANION_EXTENSION_ROOT": "extension_root",
    "COMPANION_DIFF_SCHEME": "diff_scheme",
    "COMPANION_LOG_DIR": "log_dir",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "COMPANION_DEV_MODE": "dev_mode",
    "COMPANION_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "COMPANION_LOCK_DELAY": "lock_delay_seconds",
}
_PATH_FIELDS = frozenset({"extension_root", "log_dir"})
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True, frozen=True)
class Settings:
    """Process-wide configuration, fixed once the runtime is activated."""

    panel_title: str = "Companion"
    view_type: str = "companion.TabPanelProvider"
    extension_root: Path = Path(__file__).resolve().parents[1]
    lock_delay_seconds: float = 0.1
    diff_scheme: str = DEFAULT_DIFF_SCHEME
    dev_mode: bool = False
    debug_logging: bool = False
    log_dir: Path | None = None

    @property
    def icon_light(self) -> Path:
        return self.extension_root / "assets" / "icons" / "robot_panel_light.png"

    @property
    def icon_dark(self) -> Path:
        return self.extension_root / "assets" / "icons" / "robot_panel_dark.png"


def load_settings(
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Build :class:`Settings` from defaults, the environment and explicit overrides.

    Explicit ``overrides`` win over environment variables. Unknown keys are
    ignored; an override value that cannot be coerced raises ``ValueError``.
    """

    environ = os.environ if env is None else env
    settings = _apply_overrides(Settings(), _collect_env_overrides(environ), source="environment")
    if overrides:
        settings = _apply_overrides(settings, overrides, source="runtime")
    if not settings.diff_scheme or ":" in settings.diff_scheme:
        raise ValueError(f"Invalid virtual document scheme: {settings.diff_scheme!r}")
    return settings


def redact_secret(value: str | None) -> str:
    """Mask all but the first and last two characters of ``value``."""

    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def _collect_env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            overrides[field_name] = value
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = float(value)
        except ValueError:
            LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
    return overrides


def _apply_overrides(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    allowed = {field.name: field for field in fields(Settings)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed or value is None:
            continue
        filtered[key] = _coerce(key, value)
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings


def _coerce(key: str, value: Any) -> Any:
    if key in _PATH_FIELDS:
        return Path(value).expanduser()
    if key == "lock_delay_seconds":
        delay = float(value)
        if delay < 0:
            raise ValueError("lock_delay_seconds must be non-negative")
        return delay
    if key in {"dev_mode", "debug_logging"} and isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    if key in {"dev_mode", "debug_logging"}:
        return bool(value)
    return str(value)
