# file: controllers/notification.py

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from app.models.notification import (
    NotificationCreate, NotificationResponse, NotificationDelete, NotificationReorder, NotificationOverview
)
from app.services.notification_center import NotificationSchedulingError, NotificationNotAuthorizedError
from app.services.notification_store import NotificationStore, get_notification_store
from app.services.projection import NotificationListProjection, to_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[NotificationResponse])
async def get_pending_notifications(
        q: str = "",
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Retrieves the user's pending notifications in list order, filtered by `q`
    against title and body. Empty when notifications are not authorized.
    """
    projection = NotificationListProjection(store, search_text=q)
    await store.list_pending()
    rows = projection.rows()
    projection.close()
    return rows


@router.get("/overview", response_model=NotificationOverview)
async def get_notification_overview(
        q: str = "",
        store: NotificationStore = Depends(get_notification_store),
):
    """
    The list screen in one call: permission state, the overlay to show for it,
    and the filtered rows.
    """
    projection = NotificationListProjection(store, search_text=q)
    await store.list_pending()
    overview = NotificationOverview(
        authorization_status=store.authorization_status,
        overlay=projection.overlay(),
        notifications=projection.rows(),
    )
    projection.close()
    return overview


@router.post("/", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
        notification: NotificationCreate,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Schedules a new notification with a calendar trigger. A 4xx response
    means nothing was scheduled.
    """
    try:
        db_notification = await store.create(notification)
    except NotificationNotAuthorizedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except NotificationSchedulingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        await store.center.db.rollback()
        logger.error(f"Failed to schedule notification: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=f"Failed to schedule notification: {str(e)}")
    return to_response(db_notification)


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notifications(
        payload: NotificationDelete,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Deletes the given pending notifications. Unknown identifiers are ignored.
    """
    await store.delete(payload.identifiers)
    return


@router.post("/reorder", response_model=List[NotificationResponse])
async def reorder_notifications(
        payload: NotificationReorder,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Moves the rows at `from_offsets` to just before the row at `to_offset`
    and returns the list in its new order.
    """
    await store.list_pending()
    try:
        reordered = await store.reorder(payload.from_offsets, payload.to_offset)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [to_response(n) for n in reordered]


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_notifications(store: NotificationStore = Depends(get_notification_store)):
    """
    Deletes all pending notifications for the currently authenticated user.
    """
    await store.delete_all()
    return


@router.delete("/{identifier}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
        identifier: str,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Deletes a specific pending notification; a no-op if it does not exist.
    """
    await store.delete({identifier})
    return
