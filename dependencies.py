import logging
from typing import Annotated, Optional, Union

import jwt
from fastapi import Request, Depends, HTTPException

from config import Settings
from models.user import User
from services.mongo import MongoDB
from services.s3 import S3AssetStorage
from services.security import decode_access_token
from services.storage import LocalAssetStorage

logger = logging.getLogger(__name__)


async def get_settings(request: Request) -> Settings:
    """Get settings from app state"""
    return request.app.state.settings


async def get_db(request: Request) -> MongoDB:
    """Get the shared database handle from app state"""
    return request.app.state.db


async def get_storage(request: Request) -> Union[LocalAssetStorage, S3AssetStorage]:
    """Get asset storage from app state"""
    return request.app.state.storage


def _bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split("Bearer ", 1)[1].strip()


async def get_current_user(
        request: Request,
        settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """
    Verify the access token from the Authorization header and return the caller
    """
    token = _bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header"
        )

    try:
        user_id = decode_access_token(token, settings.jwt_secret)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.PyJWTError as e:
        logger.info("Invalid authentication token: %s", e)
        raise HTTPException(
            status_code=401,
            detail=f"Invalid authentication token: {str(e)}"
        )
    return User(user_id=user_id)


async def get_optional_user(
        request: Request,
        settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[User]:
    """
    Authenticate the caller unless the legacy API is enabled, where post routes are open
    """
    if settings.legacy_api:
        return None
    return await get_current_user(request, settings)


def require_owner(current_user: Optional[User], user_id: Optional[str], action: str):
    """Reject the request unless the caller is acting for themselves"""
    if current_user is None:
        return
    if user_id != current_user.user_id:
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} as this user")


# Type annotations for dependency injection
AppSettings = Annotated[Settings, Depends(get_settings)]
Database = Annotated[MongoDB, Depends(get_db)]
Storage = Annotated[Union[LocalAssetStorage, S3AssetStorage], Depends(get_storage)]
CurrentUser = Annotated[User, Depends(get_current_user)]
PostsCaller = Annotated[Optional[User], Depends(get_optional_user)]
