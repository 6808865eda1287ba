import logging
from fastapi import APIRouter, Depends, status, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from firebase_admin import auth

from app.models.authorization import AuthorizationStatus
from app.models.user import UserResponse, UserSyncRequest
from app.services.firebase_auth import get_current_user, oauth2_scheme, verify_firebase_token
from app.database.connection import get_db
from app.database.models import User

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sync", response_model=UserResponse)
async def sync_user(
    sync_data: UserSyncRequest,
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
):
    uid = verify_firebase_token(token)
    stmt = select(User).where(User.firebase_uid == uid)
    result = await db.execute(stmt)
    db_user = result.scalars().first()
    if db_user:
        return UserResponse.model_validate(db_user)

    try:
        firebase_user_record = auth.get_user(uid)
        new_user = User(
            firebase_uid=firebase_user_record.uid,
            email=firebase_user_record.email,
            full_name=sync_data.fullName or firebase_user_record.display_name,
            authorization_status=AuthorizationStatus.NOT_DETERMINED,
        )
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
        return UserResponse.model_validate(new_user)
    except Exception as e:
        await db.rollback()
        logger.error(f"Database error on user sync: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Failed to create user profile in DB.")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
