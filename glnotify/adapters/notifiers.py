"""Notification sinks.

DesktopNotifier shells out to the platform notification tool
(notify-send on Linux, osascript on macOS). LogNotifier writes to
the log and is used headless or with --no-desktop.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from collections.abc import Callable

from glnotify.engine.errors import NotifySinkError

logger = logging.getLogger(__name__)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopNotifier:
    """Send desktop notifications through the OS notification service.

    Delivery failures raise NotifySinkError; the dispatcher logs them
    and carries on with the next payload.
    """

    def __init__(
        self,
        app_name: str = "GitLab Notifier",
        platform: str | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.app_name = app_name
        self._platform = platform or sys.platform
        self._which = which

    def build_command(
        self, title: str, body: str, metadata: dict[str, str]
    ) -> list[str]:
        """Return the argv for the platform tool. Raises NotifySinkError."""
        if self._platform == "darwin":
            osascript = self._which("osascript")
            if not osascript:
                raise NotifySinkError("desktop", "osascript not found")
            script = (
                f"display notification {_applescript_quote(body)} "
                f"with title {_applescript_quote(title)}"
            )
            url = metadata.get("projectUrl")
            if url:
                script += f" subtitle {_applescript_quote(url)}"
            return [osascript, "-e", script]

        notify_send = self._which("notify-send")
        if not notify_send:
            raise NotifySinkError("desktop", "notify-send not found")
        cmd = [
            notify_send,
            f"--app-name={self.app_name}",
            "--urgency=normal",
        ]
        for key, value in sorted(metadata.items()):
            cmd.append(f"--hint=string:x-glnotify-{key}:{value}")
        cmd.extend([title, body])
        return cmd

    async def send(self, title: str, body: str, metadata: dict[str, str]) -> None:
        cmd = self.build_command(title, body, metadata)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
        except OSError as exc:
            raise NotifySinkError("desktop", f"cannot run {cmd[0]}: {exc}") from exc

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            raise NotifySinkError(
                "desktop",
                f"{cmd[0]} exited with {process.returncode}"
                + (f": {detail}" if detail else ""),
            )
        logger.debug("Sent notification: %s", title)


class LogNotifier:
    """Writes notifications to the log instead of the desktop."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self.sent: list[tuple[str, str, dict[str, str]]] = []

    async def send(self, title: str, body: str, metadata: dict[str, str]) -> None:
        self.sent.append((title, body, dict(metadata)))
        logger.log(
            self._level,
            "Notification: %s | %s | %s",
            title, body.strip() or "(no commit message)",
            metadata.get("projectUrl", ""),
        )
