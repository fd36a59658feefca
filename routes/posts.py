import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, status

from dependencies import AppSettings, Database, PostsCaller, require_owner
from models.post import PostCreate, LikeRequest
from services.mongo import serialize

logger = logging.getLogger(__name__)

router = APIRouter()

PostsResponse = Union[List[Dict[str, Any]], Dict[str, Any]]


async def _all_posts(db) -> List[Dict[str, Any]]:
    return [serialize(post) for post in await db.get_all_posts()]


# CREATE
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
        db: Database,
        settings: AppSettings,
        post_data: PostCreate,
        current_user: PostsCaller,
) -> PostsResponse:
    """
    Create a post with a snapshot of the author's name, location and picture.
    Returns the new post, or the whole collection when LEGACY_API is on.
    """
    require_owner(current_user, post_data.userId, "post")

    try:
        user = await db.get_user(post_data.userId)
        if user is None:
            if not settings.legacy_api:
                raise HTTPException(status_code=404, detail="User not found")
            # legacy clients get a post with empty author fields
            logger.warning("Creating post for unknown user %s", post_data.userId)
            user = {}

        new_post = await db.create_post({
            "userId": post_data.userId,
            "firstName": user.get("firstName"),
            "lastName": user.get("lastName"),
            "location": user.get("location"),
            "description": post_data.description,
            "userPicturePath": user.get("picturePath"),
            "picturePath": post_data.picturePath,
            "likes": {},
            "comments": [],
        })

        if settings.legacy_api:
            return await _all_posts(db)
        return serialize(new_post)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error creating post: %s", e)
        raise HTTPException(status_code=409, detail=str(e))


# READ
@router.get("/feed")
async def get_feed_posts(db: Database, current_user: PostsCaller) -> List[Dict[str, Any]]:
    """Get every post"""
    try:
        return await _all_posts(db)
    except Exception as e:
        logger.error("Error reading feed: %s", e)
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{user_id}")
async def get_user_posts(
        db: Database,
        settings: AppSettings,
        user_id: str,
        current_user: PostsCaller,
) -> List[Dict[str, Any]]:
    """Get the posts written by user_id (every post when LEGACY_API is on)"""
    try:
        if settings.legacy_api:
            return await _all_posts(db)
        return [serialize(post) for post in await db.get_user_posts(user_id)]
    except Exception as e:
        logger.error("Error reading posts of %s: %s", user_id, e)
        raise HTTPException(status_code=404, detail=str(e))


# UPDATE
@router.patch("/{post_id}/like")
async def like_post(
        db: Database,
        settings: AppSettings,
        post_id: str,
        current_user: PostsCaller,
        like: Optional[LikeRequest] = None,
) -> PostsResponse:
    """
    Toggle the caller's like on a post and return the updated post.
    With LEGACY_API on nothing is recorded and the whole collection is returned.
    """
    if settings.legacy_api:
        try:
            return await _all_posts(db)
        except Exception as e:
            logger.error("Error reading posts: %s", e)
            raise HTTPException(status_code=404, detail=str(e))

    user_id = like.userId if like and like.userId else current_user.user_id
    require_owner(current_user, user_id, "like")

    try:
        updated_post = await db.toggle_like(post_id, user_id)
        if updated_post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return serialize(updated_post)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error liking post %s: %s", post_id, e)
        raise HTTPException(status_code=404, detail=str(e))
