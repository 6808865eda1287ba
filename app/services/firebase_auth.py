import logging
import firebase_admin
from firebase_admin import credentials, auth
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.config import FIREBASE_CREDENTIALS, TESTING
from app.database.models import User
from app.database.connection import get_db

logger = logging.getLogger(__name__)

# Singleton pattern: Check if the app is already initialized
if not firebase_admin._apps and not TESTING:
    try:
        cred = credentials.Certificate(FIREBASE_CREDENTIALS)
        firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin SDK initialized successfully.")
    except Exception as e:
        logger.error(f"FATAL: Error initializing Firebase Admin SDK: {e}")

# Scheme to extract token. auto_error=False so a missing token is reported as 401 below.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/sync", auto_error=False)


def verify_firebase_token(token: str) -> str:
    """Returns the Firebase uid for an ID token, or raises a 401 HTTPException."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    try:
        decoded_token = auth.verify_id_token(token)
        return decoded_token['uid']
    except auth.ExpiredIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception:
        raise credentials_exception


async def get_current_user(
        token: str = Depends(oauth2_scheme),
        db: AsyncSession = Depends(get_db)
) -> User:
    """
    Required dependency: Verifies Firebase ID token and returns the DB user.
    Raises HTTPException if the token is missing or invalid.
    """
    firebase_uid = verify_firebase_token(token)

    stmt = select(User).where(User.firebase_uid == firebase_uid)
    result = await db.execute(stmt)
    user = result.scalars().first()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found in application database. Please sync your account."
        )
    return user
