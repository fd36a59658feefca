import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, ReturnDocument

logger = logging.getLogger(__name__)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Render a stored document as JSON-friendly data (string ids, ISO timestamps)"""
    if doc is None:
        return None
    data = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            value = str(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        data[key] = value
    return data


def public_user(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Serialized user without the password hash"""
    data = serialize(doc)
    if data is not None:
        data.pop("password", None)
    return data


class MongoDB:
    """
    Connection handle for the document store.

    One instance is created at startup and shared by every request; call
    ``connect`` before serving and ``close`` on shutdown.
    """

    def __init__(self, url: str, db_name: str):
        self.url = url
        self.db_name = db_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self):
        self.client = AsyncIOMotorClient(self.url)
        self.db = self.client[self.db_name]
        # fail fast on a bad connection string or unreachable server
        await self.db.command("ping")
        await self.collection("users").create_index([("email", ASCENDING)], unique=True)
        logger.info("Connected to MongoDB database '%s'", self.db_name)

    async def close(self):
        if self.client is not None:
            self.client.close()
            self.client = None
            self.db = None

    def collection(self, name: str):
        if self.db is None:
            raise RuntimeError("Database is not connected")
        return self.db[name]

    # ----------------------
    # Users
    # ----------------------
    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Find a user by id. Raises InvalidId for a malformed id."""
        return await self.collection("users").find_one({"_id": ObjectId(user_id)})

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.collection("users").find_one({"email": email})

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new user and return the stored document"""
        now = datetime.now(timezone.utc)
        user = {**data, "createdAt": now, "updatedAt": now}
        result = await self.collection("users").insert_one(user)
        user["_id"] = result.inserted_id
        return user

    # ----------------------
    # Posts
    # ----------------------
    async def get_all_posts(self) -> List[Dict[str, Any]]:
        """Get every post in insertion order"""
        cursor = self.collection("posts").find().sort("_id", ASCENDING)
        return await cursor.to_list(length=None)

    async def get_user_posts(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.collection("posts").find({"userId": user_id}).sort("_id", ASCENDING)
        return await cursor.to_list(length=None)

    async def create_post(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new post and return the stored document"""
        now = datetime.now(timezone.utc)
        post = {**data, "createdAt": now, "updatedAt": now}
        result = await self.collection("posts").insert_one(post)
        post["_id"] = result.inserted_id
        return post

    async def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        try:
            oid = ObjectId(post_id)
        except InvalidId:
            return None
        return await self.collection("posts").find_one({"_id": oid})

    async def toggle_like(self, post_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Flip likes[user_id] on a post (present -> removed, absent -> true) and
        return the updated document, or None if the post does not exist.

        Each branch is a single conditional update on the document.
        """
        if not user_id or "." in user_id or user_id.startswith("$"):
            raise ValueError(f"Invalid user id '{user_id}'")
        try:
            oid = ObjectId(post_id)
        except InvalidId:
            return None

        posts = self.collection("posts")
        field = f"likes.{user_id}"
        now = datetime.now(timezone.utc)

        post = await posts.find_one_and_update(
            {"_id": oid, field: {"$exists": True}},
            {"$unset": {field: ""}, "$set": {"updatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )
        if post is None:
            post = await posts.find_one_and_update(
                {"_id": oid, field: {"$exists": False}},
                {"$set": {field: True, "updatedAt": now}},
                return_document=ReturnDocument.AFTER,
            )
        if post is None:
            # missing post, or the same user's like flipped in between
            post = await posts.find_one({"_id": oid})
        return post
