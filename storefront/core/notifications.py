# storefront/core/notifications.py
import logging
from typing import Literal, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Level = Literal["success", "error"]


class Notification(BaseModel):
    level: Level
    message: str


class Notifier(Protocol):
    """
    Fire-and-forget toast channel.

    Implementations may fail; callers go through `notify()` so a broken
    sink never interrupts a cart operation.
    """

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Writes toasts to the log. Used when nobody is listening."""

    def success(self, message: str) -> None:
        logger.info("toast: %s", message)

    def error(self, message: str) -> None:
        logger.warning("toast: %s", message)


class BufferedNotifier:
    """
    Collects toasts so the HTTP layer can return them with the response.
    """

    def __init__(self) -> None:
        self._pending: list[Notification] = []

    def success(self, message: str) -> None:
        self._pending.append(Notification(level="success", message=message))

    def error(self, message: str) -> None:
        self._pending.append(Notification(level="error", message=message))

    def drain(self) -> list[Notification]:
        pending, self._pending = self._pending, []
        return pending


def notify(notifier: Notifier, level: Level, message: str) -> None:
    try:
        if level == "success":
            notifier.success(message)
        else:
            notifier.error(message)
    except Exception:
        logger.exception("Notifier failed to deliver %s toast: %s", level, message)
