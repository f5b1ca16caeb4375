"""
Notification Service Tool
Displays user-facing reminder notifications, degrading to in-app toasts
when notification permission is denied
"""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from config import settings


logger = logging.getLogger(__name__)


class NotificationChannel(str, Enum):
    """Available display channels"""
    SYSTEM = "system"    # OS/browser notification, needs permission
    IN_APP = "in_app"    # Toast inside an open client


class NotificationType(str, Enum):
    """Types of notifications"""
    MEDICATION_REMINDER = "medication_reminder"
    FOLLOW_UP_REMINDER = "follow_up_reminder"


@dataclass
class NotificationResult:
    """Result of displaying a notification"""
    success: bool
    channel: NotificationChannel
    tag: Optional[str] = None
    delivered_at: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class InAppNotification:
    """Toast queued for the client"""
    title: str
    body: str
    tag: str
    urgent: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "tag": self.tag,
            "urgent": self.urgent,
            "created_at": self.created_at.isoformat()
        }


NOTIFICATION_TEMPLATES: Dict[NotificationType, Dict[str, str]] = {
    NotificationType.MEDICATION_REMINDER: {
        "title": "💊 Medicine Reminder",
        "body": "Time to take {medicine_name}!",
        "tag": "reminder-{dose_log_id}",
    },
    NotificationType.FOLLOW_UP_REMINDER: {
        "title": "⏰ Follow-up Reminder",
        "body": "Don't forget to take {medicine_name}!",
        "tag": "followup-{dose_log_id}",
    },
}


class NotificationService:
    """
    Shows reminder notifications. System notifications are no-ops without
    permission; an in-app toast is always queued as the fallback. The inbox
    keeps only the newest `inbox_limit` toasts.
    """

    def __init__(self, permitted: Optional[bool] = None, inbox_limit: Optional[int] = None):
        self.templates = NOTIFICATION_TEMPLATES
        self.permitted = settings.NOTIFICATIONS_PERMITTED if permitted is None else permitted
        limit = settings.NOTIFICATION_INBOX_LIMIT if inbox_limit is None else inbox_limit
        self._inbox: Deque[InAppNotification] = deque(maxlen=limit)

    def set_permission(self, permitted: bool):
        """Record the user's notification permission choice"""
        self.permitted = permitted
        logger.info(f"Notification permission {'granted' if permitted else 'denied'}")

    def show(self, title: str, body: str, tag: str, urgent: bool = False) -> NotificationResult:
        """Display a notification; returns which channel carried it"""
        self._inbox.append(InAppNotification(title=title, body=body, tag=tag, urgent=urgent))

        if not self.permitted:
            logger.debug(f"[IN-APP] {tag}: {title}")
            return NotificationResult(
                success=True,
                channel=NotificationChannel.IN_APP,
                tag=tag,
                delivered_at=datetime.now()
            )

        logger.info(f"[SYSTEM] {tag}: {title} - {body}")
        return NotificationResult(
            success=True,
            channel=NotificationChannel.SYSTEM,
            tag=tag,
            delivered_at=datetime.now()
        )

    def show_template(
        self,
        notification_type: NotificationType,
        urgent: bool = False,
        **data
    ) -> NotificationResult:
        """Format a template and display it"""
        template = self.templates[notification_type]
        try:
            title = template["title"].format(**data)
            body = template["body"].format(**data)
            tag = template["tag"].format(**data)
        except KeyError as e:
            logger.warning(f"Missing template variable: {e}")
            return NotificationResult(
                success=False,
                channel=NotificationChannel.IN_APP,
                error=f"Missing template variable: {e}"
            )
        return self.show(title, body, tag, urgent=urgent)

    def drain_inbox(self) -> List[InAppNotification]:
        """Return and clear queued in-app toasts"""
        items = list(self._inbox)
        self._inbox.clear()
        return items


# Singleton instance
notification_service = NotificationService()
