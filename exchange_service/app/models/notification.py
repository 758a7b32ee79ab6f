from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """사용자에게 보여줄 토스트 알림."""

    level: NotificationLevel = NotificationLevel.INFO
    title: str
    message: str
