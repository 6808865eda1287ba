# file: services/notification_store.py

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.database.models import PendingNotification, User
from app.models.authorization import AuthorizationStatus
from app.models.notification import NotificationCreate
from app.services.firebase_auth import get_current_user
from app.services.notification_center import NotificationCenter

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[List[PendingNotification]], None]


def move_offsets(items: Sequence[T], from_offsets: Iterable[int], to_offset: int) -> List[T]:
    """
    Moves the items at `from_offsets` so they sit, in their original relative
    order, just before the item that was at `to_offset`. `to_offset` may equal
    len(items) to move to the end.
    """
    offsets = sorted(set(from_offsets))
    if any(o < 0 or o >= len(items) for o in offsets):
        raise ValueError(f"Source offsets {offsets} out of range for {len(items)} items")
    if to_offset < 0 or to_offset > len(items):
        raise ValueError(f"Destination offset {to_offset} out of range for {len(items)} items")

    moving = [items[o] for o in offsets]
    moving_set = set(offsets)
    before = [item for i, item in enumerate(items[:to_offset]) if i not in moving_set]
    after = [item for i, item in enumerate(items) if i >= to_offset and i not in moving_set]
    return before + moving + after


class NotificationStore:
    """
    Cached, ordered view of a user's pending notifications plus their
    authorization status. Subscribers are called with the list after every
    reload or reorder.
    """

    def __init__(self, center: NotificationCenter):
        self.center = center
        self.notifications: List[PendingNotification] = []
        self.authorization_status = AuthorizationStatus.NOT_DETERMINED
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self):
        for listener in list(self._listeners):
            listener(self.notifications)

    async def refresh_authorization_status(self) -> AuthorizationStatus:
        self.authorization_status = await self.center.authorization_status()
        return self.authorization_status

    async def request_authorization(self, granted: bool) -> AuthorizationStatus:
        self.authorization_status = await self.center.request_authorization(granted)
        await self.reload()
        return self.authorization_status

    async def update_authorization_setting(self, enabled: bool) -> AuthorizationStatus:
        self.authorization_status = await self.center.update_authorization_setting(enabled)
        await self.reload()
        return self.authorization_status

    async def reload(self) -> List[PendingNotification]:
        if self.authorization_status == AuthorizationStatus.AUTHORIZED:
            self.notifications = await self.center.pending_requests()
        else:
            self.notifications = []
        self._publish()
        return self.notifications

    async def list_pending(self) -> List[PendingNotification]:
        await self.refresh_authorization_status()
        return await self.reload()

    async def create(self, request: NotificationCreate, now: Optional[datetime] = None) -> PendingNotification:
        notification = await self.center.add(request, now)
        await self.list_pending()
        return notification

    async def delete(self, identifiers: Iterable[str]) -> None:
        await self.center.remove(identifiers)
        await self.list_pending()

    async def delete_all(self) -> None:
        await self.center.remove_all()
        await self.list_pending()

    async def reorder(self, from_offsets: Iterable[int], to_offset: int) -> List[PendingNotification]:
        reordered = move_offsets(self.notifications, from_offsets, to_offset)
        await self.center.set_order([n.identifier for n in reordered])
        logger.info(f"Moved notifications at {sorted(set(from_offsets))} to offset {to_offset}")
        self.notifications = reordered
        self._publish()
        return self.notifications


async def get_notification_store(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
) -> NotificationStore:
    """Dependency: a store bound to the current user's notification authority."""
    store = NotificationStore(NotificationCenter(db, current_user))
    await store.refresh_authorization_status()
    return store
