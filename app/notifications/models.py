from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationCategory(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    SECURITY = "security"


@dataclass(slots=True)
class Notification:
    """Message persisted for a single recipient."""

    id: int
    recipient_id: int
    title: str
    message: str
    category: NotificationCategory
    is_read: bool
    created_at: datetime

    def to_push_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
        }
