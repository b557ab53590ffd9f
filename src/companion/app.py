"""Entry point running the Companion runtime inside a Qt window."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, cast

from .runtime import CompanionRuntime
from .services.settings import Settings, load_settings
from .ui.events import EventBus
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, settings: Settings | None = None, force: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    log_dir = settings.log_dir if settings is not None else None
    logging_utils.setup_logging(level, log_dir=log_dir, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def create_qapp(settings: Settings) -> QtRuntime:
    """Create the QApplication and install a qasync event loop."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName(settings.panel_title)
    app.setApplicationDisplayName(settings.panel_title)

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="companion",
        description="Run the Companion assistant panel runtime.",
    )
    parser.add_argument(
        "--uri",
        action="append",
        default=[],
        metavar="URI",
        help="Route an external callback URI once the default panel is open (repeatable).",
    )
    parser.add_argument("--dev", action="store_true", help="Enable development commands.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--no-default-panel",
        action="store_true",
        help="Do not open a panel on start-up.",
    )
    return parser


def resolve_settings(args: argparse.Namespace, *, env: Mapping[str, str] | None = None) -> Settings:
    """Load settings with command-line flags taking precedence over the environment."""

    overrides: dict[str, Any] = {}
    if args.dev:
        overrides["dev_mode"] = True
    if args.debug:
        overrides["debug_logging"] = True
    return load_settings(overrides=overrides, env=env)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``companion`` console script."""

    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    configure_logging(settings.debug_logging, settings=settings)

    from PySide6.QtWidgets import QMainWindow

    from .ui.qt_host import QtEditorHost

    qt = create_qapp(settings)
    window = QMainWindow()
    window.setWindowTitle(settings.panel_title)
    window.resize(1200, 800)
    host = QtEditorHost(window)
    event_bus: EventBus = EventBus()
    host.bind_event_bus(event_bus)
    window.show()

    loop = qt.loop
    runtime = loop.run_until_complete(
        CompanionRuntime.activate(
            host,
            settings,
            event_bus=event_bus,
            open_default_panel=not args.no_default_panel,
        )
    )
    for uri in args.uri:
        task = loop.create_task(runtime.handle_uri(uri))
        task.add_done_callback(_log_callback_failure)

    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(runtime.deactivate())
        _drain_event_loop(loop)
        loop.close()


def _log_callback_failure(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _LOGGER.error("Callback routing failed: %s", exc, exc_info=exc)


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks before the loop closes."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current = asyncio.current_task()
        tasks = [task for task in asyncio.all_tasks() if not task.done() and task is not current]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopping
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


if __name__ == "__main__":  # pragma: no cover
    main()
