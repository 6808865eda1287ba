# file: controllers/authorization.py

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.authorization import AuthorizationRequest, AuthorizationResponse, AuthorizationSettingsUpdate
from app.services.notification_center import AuthorizationStateError
from app.services.notification_store import NotificationStore, get_notification_store

router = APIRouter()


@router.get("/", response_model=AuthorizationResponse)
async def get_authorization_status(store: NotificationStore = Depends(get_notification_store)):
    """
    Re-reads the current notification permission state.
    """
    return AuthorizationResponse(status=await store.refresh_authorization_status())


@router.post("/request", response_model=AuthorizationResponse)
async def request_authorization(
        request: AuthorizationRequest,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Records the answer to the permission prompt. Only the first answer counts;
    later calls return the current status unchanged.
    """
    return AuthorizationResponse(status=await store.request_authorization(request.granted))


@router.put("/settings", response_model=AuthorizationResponse)
async def update_authorization_setting(
        settings_update: AuthorizationSettingsUpdate,
        store: NotificationStore = Depends(get_notification_store),
):
    """
    Toggles notifications on or off from settings, after the prompt has been answered.
    """
    try:
        new_status = await store.update_authorization_setting(settings_update.enabled)
    except AuthorizationStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return AuthorizationResponse(status=new_status)
