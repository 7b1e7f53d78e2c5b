"""
Toast notifications raised by controllers and forms
"""
import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

VALIDATION_TITLE = "Validation Error"
ERROR_TITLE = "Error"


class NotificationKind(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    VALIDATION = "validation"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    description: str = ""


class Notifier:
    """Collects notifications in order; the render layer drains `history`"""

    def __init__(self):
        self.history: List[Notification] = []

    def notify(self, kind: NotificationKind, title: str, description: str = "") -> Notification:
        notification = Notification(kind=kind, title=title, description=description)
        self.history.append(notification)
        if kind == NotificationKind.SUCCESS:
            logger.info(f"{title}: {description}")
        else:
            logger.warning(f"{title}: {description}")
        return notification

    def success(self, title: str, description: str = "") -> Notification:
        return self.notify(NotificationKind.SUCCESS, title, description)

    def error(self, description: str, title: str = ERROR_TITLE) -> Notification:
        return self.notify(NotificationKind.ERROR, title, description)

    def validation(self, description: str) -> Notification:
        return self.notify(NotificationKind.VALIDATION, VALIDATION_TITLE, description)

    def of_kind(self, kind: NotificationKind) -> List[Notification]:
        return [n for n in self.history if n.kind == kind]

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def clear(self) -> None:
        self.history.clear()
