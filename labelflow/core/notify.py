from dataclasses import dataclass
from typing import Callable, Protocol

from labelflow.util import logging


class Notifier(Protocol):
    def error(self, message: str, description: str | None = None):
        """Non blocking, transient failure notification."""
        ...

    def confirm(
        self,
        title: str,
        content: str,
        ok_text: str,
        on_ok: Callable[[], None],
    ):
        """Blocking confirmation offering a single remediation action."""
        ...


@dataclass
class PendingConfirm:
    title: str
    content: str
    ok_text: str
    on_ok: Callable[[], None]


class LoggingNotifier:
    """Headless notifier. Confirmations are kept until accepted or dismissed."""

    def __init__(self):
        self.pending_confirm: PendingConfirm | None = None

    def error(self, message: str, description: str | None = None):
        logging.warning(f"{message}: {description}")

    def confirm(
        self,
        title: str,
        content: str,
        ok_text: str,
        on_ok: Callable[[], None],
    ):
        logging.info(f"{title} {content}")
        self.pending_confirm = PendingConfirm(title, content, ok_text, on_ok)

    def accept_confirm(self):
        if self.pending_confirm is None:
            return
        pending, self.pending_confirm = self.pending_confirm, None
        pending.on_ok()

    def dismiss_confirm(self):
        self.pending_confirm = None
