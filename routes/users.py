from fastapi import APIRouter, HTTPException
from bson.errors import InvalidId

from dependencies import CurrentUser, Database
from services.mongo import public_user

router = APIRouter()


@router.get("/{user_id}")
async def get_user(user_id: str, db: Database, current_user: CurrentUser):
    """Get a user's profile"""
    try:
        user = await db.get_user(user_id)
    except InvalidId:
        user = None
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return public_user(user)
