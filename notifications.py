"""Toast-style notifications raised by the consoles."""
import logging
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"
INFO = "info"


@dataclass(frozen=True)
class Toast:
    level: str
    message: str


@dataclass
class Notifier:
    toasts: List[Toast] = field(default_factory=list)

    def notify(self, level: str, message: str) -> Toast:
        toast = Toast(level, message)
        self.toasts.append(toast)
        logger.log(logging.ERROR if level == ERROR else logging.INFO, "[%s] %s", level, message)
        return toast

    def success(self, message: str) -> Toast:
        return self.notify(SUCCESS, message)

    def error(self, message: str) -> Toast:
        return self.notify(ERROR, message)

    def info(self, message: str) -> Toast:
        return self.notify(INFO, message)

    @property
    def last(self):
        return self.toasts[-1] if self.toasts else None
