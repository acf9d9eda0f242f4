"""Non-blocking user notifications (the toasts of the presentation layer)."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Literal

from loguru import logger

Kind = Literal["success", "error", "info"]


@dataclass(frozen=True)
class Notification:
    kind: Kind
    message: str


class Notifier:
    """Forwards notifications to an optional callback and keeps recent ones."""

    def __init__(self, callback: Callable[[Notification], None] | None = None, *, keep: int = 100) -> None:
        self._callback = callback
        self._recent: deque[Notification] = deque(maxlen=keep)

    def emit(self, kind: Kind, message: str) -> None:
        notification = Notification(kind, message)
        logger.debug("notify [{}] {}", kind, message)
        self._recent.append(notification)
        if self._callback is not None:
            self._callback(notification)

    def success(self, message: str) -> None:
        self.emit("success", message)

    def error(self, message: str) -> None:
        self.emit("error", message)

    def info(self, message: str) -> None:
        self.emit("info", message)

    @property
    def recent(self) -> list[Notification]:
        return list(self._recent)

    @property
    def last(self) -> Notification | None:
        return self._recent[-1] if self._recent else None
