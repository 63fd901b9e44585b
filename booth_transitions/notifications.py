"""
User-facing notifications (toasts).
"""

from typing import Protocol

import structlog

logger = structlog.get_logger()


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes every toast to the structured log."""

    def success(self, message: str) -> None:
        logger.info("Notification", kind="success", message=message)

    def info(self, message: str) -> None:
        logger.info("Notification", kind="info", message=message)

    def warning(self, message: str) -> None:
        logger.warning("Notification", kind="warning", message=message)

    def error(self, message: str) -> None:
        logger.error("Notification", kind="error", message=message)


class RecordingNotifier(LoggingNotifier):
    """Logs every toast and keeps (level, message) pairs for reporting."""

    def __init__(self):
        self.messages = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))
        super().success(message)

    def info(self, message: str) -> None:
        self.messages.append(("info", message))
        super().info(message)

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))
        super().warning(message)

    def error(self, message: str) -> None:
        self.messages.append(("error", message))
        super().error(message)

    def levels(self):
        return [level for level, _ in self.messages]
