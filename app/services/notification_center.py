# file: services/notification_center.py

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import MAX_PENDING_NOTIFICATIONS
from app.database.models import User, PendingNotification
from app.models.authorization import AuthorizationStatus
from app.models.notification import NotificationCreate
from app.services.calendar_trigger import current_time, trigger_date, has_fired

logger = logging.getLogger(__name__)


class NotificationSchedulingError(Exception):
    """The authority refused to register a notification request."""


class NotificationNotAuthorizedError(NotificationSchedulingError):
    pass


class AuthorizationStateError(Exception):
    """An authorization transition that is not allowed from the current state."""


class NotificationCenter:
    """
    Notification authority for a single user. Persists pending requests and the
    user's permission state; every mutation is committed before returning.
    """

    def __init__(self, db: AsyncSession, user: User, max_pending: int = MAX_PENDING_NOTIFICATIONS):
        self.db = db
        self.user = user
        self.max_pending = max_pending

    # --- Authorization ---

    async def authorization_status(self) -> AuthorizationStatus:
        await self.db.refresh(self.user, attribute_names=["authorization_status"])
        return AuthorizationStatus(self.user.authorization_status)

    async def request_authorization(self, granted: bool) -> AuthorizationStatus:
        status = await self.authorization_status()
        if status != AuthorizationStatus.NOT_DETERMINED:
            # The permission prompt is only ever shown once
            return status
        new_status = AuthorizationStatus.AUTHORIZED if granted else AuthorizationStatus.DENIED
        self.user.authorization_status = new_status
        await self.db.commit()
        logger.info(f"Notification prompt answered: {new_status.value}")
        return new_status

    async def update_authorization_setting(self, enabled: bool) -> AuthorizationStatus:
        status = await self.authorization_status()
        if status == AuthorizationStatus.NOT_DETERMINED:
            raise AuthorizationStateError("Notification permission has not been requested yet")
        new_status = AuthorizationStatus.AUTHORIZED if enabled else AuthorizationStatus.DENIED
        self.user.authorization_status = new_status
        await self.db.commit()
        return new_status

    # --- Pending requests ---

    async def pending_requests(self) -> List[PendingNotification]:
        stmt = (
            select(PendingNotification)
            .where(PendingNotification.user_id == self.user.id)
            .order_by(PendingNotification.position, PendingNotification.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, request: NotificationCreate, now: Optional[datetime] = None) -> PendingNotification:
        # The first firing date must be ahead, repeating or not
        first = trigger_date(request.year, request.month, request.day, request.hour, request.minute)
        if first <= (now or current_time()):
            logger.warning(f"Rejected notification '{request.title}' for user {self.user.id}: trigger date has passed")
            raise NotificationSchedulingError("Trigger date must be in the future")

        if await self.authorization_status() != AuthorizationStatus.AUTHORIZED:
            raise NotificationNotAuthorizedError("Notifications are not authorized for this user")

        count_stmt = select(func.count(), func.max(PendingNotification.position)).where(
            PendingNotification.user_id == self.user.id
        )
        pending_count, last_position = (await self.db.execute(count_stmt)).one()
        if pending_count >= self.max_pending:
            logger.warning(f"Rejected notification '{request.title}' for user {self.user.id}: limit reached")
            raise NotificationSchedulingError(
                f"Pending notification limit of {self.max_pending} reached"
            )

        db_notification = PendingNotification(
            identifier=uuid.uuid4().hex,
            user_id=self.user.id,
            title=request.title,
            body=request.body,
            year=request.year,
            month=request.month,
            day=request.day,
            hour=request.hour,
            minute=request.minute,
            repeats=request.repeats,
            position=0 if last_position is None else last_position + 1,
        )
        self.db.add(db_notification)
        await self.db.commit()
        await self.db.refresh(db_notification)
        logger.info(f"Scheduled notification {db_notification.identifier} for user {self.user.id}")
        return db_notification

    async def remove(self, identifiers: Iterable[str]) -> int:
        identifiers = set(identifiers)
        if not identifiers:
            return 0
        stmt = delete(PendingNotification).where(
            PendingNotification.user_id == self.user.id,
            PendingNotification.identifier.in_(identifiers),
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        logger.info(f"Removed {result.rowcount} of {len(identifiers)} requested notifications for user {self.user.id}")
        return result.rowcount

    async def remove_all(self) -> int:
        stmt = delete(PendingNotification).where(PendingNotification.user_id == self.user.id)
        result = await self.db.execute(stmt)
        await self.db.commit()
        logger.info(f"Removed all {result.rowcount} notifications for user {self.user.id}")
        return result.rowcount

    async def set_order(self, identifiers: List[str]) -> None:
        """Persists the given identifier order as list positions."""
        by_identifier = {n.identifier: n for n in await self.pending_requests()}
        for position, identifier in enumerate(identifiers):
            if identifier in by_identifier:
                by_identifier[identifier].position = position
        await self.db.commit()


async def purge_fired_notifications(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Removes one-shot requests whose trigger date has passed, for all users."""
    stmt = select(PendingNotification).where(PendingNotification.repeats == False)  # noqa: E712
    result = await db.execute(stmt)
    fired = [n for n in result.scalars().all() if has_fired(n, now)]
    for notification in fired:
        await db.delete(notification)
    if fired:
        await db.commit()
    return len(fired)
