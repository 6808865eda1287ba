# file: services/projection.py

from datetime import datetime
from typing import List, Optional, Sequence

from app.config import DISPLAY_TIME_FALLBACK, SETTINGS_URL
from app.database.models import PendingNotification
from app.models.authorization import AuthorizationStatus
from app.models.notification import InfoOverlay, NotificationResponse
from app.services.calendar_trigger import next_trigger_date
from app.services.notification_store import NotificationStore


def filter_notifications(notifications: Sequence, query: str) -> list:
    """Case-insensitive substring match on title or body. An empty query keeps everything."""
    if not query:
        return list(notifications)
    needle = query.casefold()
    return [
        n for n in notifications
        if needle in (n.title or "").casefold() or needle in (n.body or "").casefold()
    ]


def format_short_time(value: datetime) -> str:
    # "07:05 AM" -> "7:05 AM"
    return value.strftime("%I:%M %p").lstrip("0")


def display_time(notification, now: Optional[datetime] = None) -> str:
    next_date = next_trigger_date(notification, now)
    if next_date is None:
        return DISPLAY_TIME_FALLBACK
    return format_short_time(next_date)


def info_overlay(status: AuthorizationStatus, notifications: Sequence) -> Optional[InfoOverlay]:
    if status == AuthorizationStatus.AUTHORIZED:
        if notifications:
            return None
        return InfoOverlay(
            kind="empty",
            message="No events have been created yet",
            button_title="Create",
            system_image_name="plus.circle",
            action="create",
        )
    elif status == AuthorizationStatus.DENIED:
        return InfoOverlay(
            kind="permission_denied",
            message="Please allow notifications",
            button_title="Settings",
            system_image_name="gear",
            action="open_settings",
            action_url=SETTINGS_URL,
        )
    elif status == AuthorizationStatus.NOT_DETERMINED:
        return None
    raise ValueError(f"Unknown authorization status: {status}")


def to_response(notification: PendingNotification, now: Optional[datetime] = None) -> NotificationResponse:
    return NotificationResponse(
        identifier=notification.identifier,
        title=notification.title,
        body=notification.body or "",
        year=notification.year,
        month=notification.month,
        day=notification.day,
        hour=notification.hour,
        minute=notification.minute,
        repeats=notification.repeats,
        position=notification.position,
        next_trigger_date=next_trigger_date(notification, now),
        display_time=display_time(notification, now),
    )


class NotificationListProjection:
    """Search-filtered rows of a NotificationStore, kept current through its subscription."""

    def __init__(self, store: NotificationStore, search_text: str = ""):
        self.store = store
        self._search_text = search_text
        self.visible: List[PendingNotification] = filter_notifications(store.notifications, search_text)
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def search_text(self) -> str:
        return self._search_text

    @search_text.setter
    def search_text(self, value: str):
        self._search_text = value or ""
        self.visible = filter_notifications(self.store.notifications, self._search_text)

    def _on_store_change(self, notifications: List[PendingNotification]):
        self.visible = filter_notifications(notifications, self._search_text)

    def overlay(self) -> Optional[InfoOverlay]:
        return info_overlay(self.store.authorization_status, self.store.notifications)

    def rows(self, now: Optional[datetime] = None) -> List[NotificationResponse]:
        return [to_response(n, now) for n in self.visible]

    def close(self):
        self._unsubscribe()
