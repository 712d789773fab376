"""glnotify CLI - main application entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from glnotify.adapters.indicator import ConsoleIndicator, LogIndicator
from glnotify.adapters.notifiers import DesktopNotifier, LogNotifier
from glnotify.adapters.settings import OverrideSettings, YamlSettingsProvider
from glnotify.engine.config import NotifierConfig
from glnotify.engine.errors import ConfigError
from glnotify.engine.models import SupervisorState
from glnotify.engine.supervisor import Supervisor, validate_endpoint
from glnotify.engine.yaml_config import default_config_path, load_yaml_config

logger = logging.getLogger(__name__)

LOG_DIR = Path.home() / ".glnotify" / "logs"


def configure_logging(level: str, log_dir: Path | None = LOG_DIR) -> Path | None:
    """Root logger: rotating file (2 MB x 5) plus stderr."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    log_file = None
    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / "glnotify.log"
            file_handler = RotatingFileHandler(
                log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as exc:
            log_file = None
            print(f"glnotify: cannot write log file in {log_dir}: {exc}", file=sys.stderr)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)
    return log_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glnotify",
        description="Desktop notifications for GitLab pipeline events",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help=f"YAML config file (default: {default_config_path()})",
    )
    parser.add_argument(
        "--endpoint", metavar="URL",
        help="Notifier service WebSocket URL (overrides settings.backend_url)",
    )
    parser.add_argument(
        "--namespace", metavar="NS",
        help="Only notify for projects in this namespace",
    )
    parser.add_argument(
        "--ignore", metavar="PROJECT",
        help="Never notify for this project",
    )
    parser.add_argument(
        "--reconnect-delay", metavar="SECONDS", type=float, default=None,
        help="Delay between reconnect attempts (default: 1.0)",
    )
    parser.add_argument(
        "--save-settings", action="store_true",
        help="Write --endpoint/--namespace/--ignore into the config file, then run",
    )
    parser.add_argument(
        "--no-desktop", action="store_true",
        help="Log notifications instead of sending desktop notifications",
    )
    parser.add_argument(
        "--no-spinner", action="store_true",
        help="Log running/idle changes instead of showing a console spinner",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def load_config(config_arg: str | None) -> tuple[NotifierConfig, Path]:
    """Resolve the config path and load engine tuning from it.

    An explicit --config that does not exist is a ConfigError; a
    missing auto-discovered file just means defaults.
    """
    base = NotifierConfig.from_env()
    if config_arg:
        path = Path(config_arg).expanduser()
        logger.info("Using explicit config path: %s (exists=%s)", path, path.exists())
        if not path.exists():
            raise ConfigError("config", f"file not found: {path}")
    else:
        path = default_config_path()
        if not path.exists():
            logger.info("No config file at %s, using env/defaults", path)
            return base, path

    try:
        return load_yaml_config(path, base=base).notifier, path
    except Exception as exc:
        raise ConfigError("config", f"cannot load {path}: {exc}") from exc


def save_settings(store: YamlSettingsProvider, settings: OverrideSettings) -> None:
    """Persist the effective endpoint and filters into *store*.

    Raises ConfigError for a missing or malformed endpoint, so a bad
    URL is never written.
    """
    endpoint = validate_endpoint(settings.get_endpoint())
    store.save(endpoint, settings.get_filters())


async def serve(supervisor: Supervisor, stopped: asyncio.Event) -> None:
    """Run until SIGINT/SIGTERM. SIGHUP restarts with fresh settings."""
    loop = asyncio.get_running_loop()

    def _restart() -> None:
        logger.info("SIGHUP received, restarting with fresh settings")
        task = loop.create_task(supervisor.start())
        task.add_done_callback(_log_restart_failure)

    def _log_restart_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Restart failed: %s", exc)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, supervisor.stop)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported here", sig)
    if hasattr(signal, "SIGHUP"):
        try:
            loop.add_signal_handler(signal.SIGHUP, _restart)
        except (NotImplementedError, RuntimeError):
            logger.debug("SIGHUP restart not supported here")

    await supervisor.start()
    try:
        await stopped.wait()
    finally:
        supervisor.stop()
        await supervisor.wait_closed()
        logger.info(
            "Shut down after %d reconnect attempt(s); counters: %s",
            supervisor.reconnect_attempts,
            supervisor.pipeline.metrics.snapshot(),
        )


def main() -> None:
    args = build_parser().parse_args()

    try:
        config, config_path = load_config(args.config)
    except ConfigError as exc:
        configure_logging("INFO", log_dir=None)
        print(f"glnotify: {exc}", file=sys.stderr)
        sys.exit(2)

    if args.reconnect_delay is not None:
        config.reconnect_delay_seconds = args.reconnect_delay
    level = "DEBUG" if args.verbose else config.log_level
    log_file = configure_logging(level, LOG_DIR)
    logger.info(
        "Starting glnotify config=%s log=%s", config_path, log_file or "<stderr only>"
    )

    store = YamlSettingsProvider(config_path)
    settings = OverrideSettings(
        store,
        endpoint=args.endpoint,
        namespace=args.namespace,
        ignore_project=args.ignore,
    )
    if args.save_settings:
        try:
            save_settings(store, settings)
        except (ConfigError, OSError) as exc:
            print(f"glnotify: cannot save settings: {exc}", file=sys.stderr)
            sys.exit(2)
    notifier = LogNotifier() if args.no_desktop else DesktopNotifier()
    indicator = LogIndicator() if args.no_spinner else ConsoleIndicator()

    async def _main() -> None:
        stopped = asyncio.Event()

        def on_state(state: SupervisorState) -> None:
            if isinstance(indicator, ConsoleIndicator):
                indicator.show_state(state)
            if state is SupervisorState.STOPPED:
                stopped.set()

        supervisor = Supervisor(
            settings, notifier, indicator, config=config, state_listener=on_state,
        )
        await serve(supervisor, stopped)

    try:
        asyncio.run(_main())
    except ConfigError as exc:
        print(f"glnotify: {exc}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted.")


if __name__ == "__main__":
    main()
