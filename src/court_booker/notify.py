"""Notification transports — console, sound/desktop alerts and ntfy push."""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from typing import Iterable, Protocol

import requests
from rich.console import Console
from rich.panel import Panel

console = Console()

NTFY_SERVER = "https://ntfy.sh"


@dataclass(frozen=True)
class Notification:
    title: str
    message: str


class Notifier(Protocol):
    def send(self, notification: Notification) -> None: ...


# ---------------------------------------------------------------------------
# Sound / desktop helpers
# ---------------------------------------------------------------------------

def beep(times: int = 3) -> None:
    """Play a terminal bell / system beep."""
    for _ in range(times):
        sys.stdout.write("\a")
        sys.stdout.flush()


def play_sound() -> None:
    """Play an alert sound (Windows-specific, falls back to beep)."""
    try:
        import winsound
        winsound.MessageBeep(winsound.MB_ICONEXCLAMATION)
    except ImportError:
        beep()


def _toast_command(title: str, message: str) -> list[str] | None:
    if sys.platform == "darwin":
        # Passed as arguments so quotes in the text need no escaping
        return [
            "osascript",
            "-e", "on run argv",
            "-e", "display notification (item 2 of argv) with title (item 1 of argv)",
            "-e", "end run",
            title,
            message,
        ]
    if sys.platform.startswith("win"):
        ps_script = (
            "[Windows.UI.Notifications.ToastNotificationManager, "
            "Windows.UI.Notifications, ContentType = WindowsRuntime] > $null; "
            "$xml = [Windows.UI.Notifications.ToastNotificationManager]"
            "::GetTemplateContent("
            "[Windows.UI.Notifications.ToastTemplateType]::ToastText02); "
            '$text = $xml.GetElementsByTagName("text"); '
            f'$text[0].AppendChild($xml.CreateTextNode("{title}")) > $null; '
            f'$text[1].AppendChild($xml.CreateTextNode("{message}")) > $null; '
            "$toast = [Windows.UI.Notifications.ToastNotification]::new($xml); "
            '[Windows.UI.Notifications.ToastNotificationManager]'
            '::CreateToastNotifier("CourtBooker").Show($toast)'
        )
        return ["powershell", "-Command", ps_script]
    return ["notify-send", title, message]


def desktop_notify(title: str, message: str) -> None:
    """Show an OS notification (best-effort, falls back to a beep)."""
    try:
        subprocess.run(_toast_command(title, message), capture_output=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        beep(1)


# ---------------------------------------------------------------------------
# Notifiers
# ---------------------------------------------------------------------------

class ConsoleNotifier:
    """Print the notification as a rich panel."""

    def send(self, notification: Notification) -> None:
        console.print(Panel(notification.message, title=notification.title, border_style="cyan"))


class DesktopNotifier:
    def __init__(self, sound: bool = True) -> None:
        self.sound = sound

    def send(self, notification: Notification) -> None:
        if self.sound:
            play_sound()
        # Toasts only have room for a line or two
        first_line = notification.message.splitlines()[0] if notification.message else ""
        desktop_notify(notification.title, first_line)


class NtfyNotifier:
    """Push to an ntfy.sh topic."""

    def __init__(self, topic: str, server: str = NTFY_SERVER, timeout: float = 5) -> None:
        self.url = f"{server.rstrip('/')}/{topic}"
        self.timeout = timeout

    def send(self, notification: Notification) -> None:
        response = requests.post(
            self.url,
            data=notification.message.encode("utf-8"),
            headers={"Title": notification.title.encode("ascii", "ignore").decode().strip()},
            timeout=self.timeout,
        )
        response.raise_for_status()


class MultiNotifier:
    """Fan a notification out to several transports; one failing does not stop the rest."""

    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self.notifiers = list(notifiers)

    def send(self, notification: Notification) -> None:
        for notifier in self.notifiers:
            try:
                notifier.send(notification)
            except Exception as e:
                console.print(
                    f"[yellow]⚠ {type(notifier).__name__} failed to send notification: {e}[/]"
                )


def build_notifier(console_enabled: bool = True, desktop: bool = False, ntfy_topic: str = "") -> MultiNotifier:
    """Assemble the configured transports."""
    notifiers: list[Notifier] = []
    if console_enabled:
        notifiers.append(ConsoleNotifier())
    if desktop:
        notifiers.append(DesktopNotifier())
    if ntfy_topic:
        notifiers.append(NtfyNotifier(ntfy_topic))
    return MultiNotifier(notifiers)
