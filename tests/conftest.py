import asyncio
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

# settings are read once at import time
_ASSETS_DIR = tempfile.mkdtemp(prefix="assets-")
os.environ["ASSETS_DIR"] = _ASSETS_DIR
os.environ["ASSET_STORAGE"] = "local"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LEGACY_API"] = "false"

from config import Settings  # noqa: E402
from dependencies import get_db, get_settings, get_storage  # noqa: E402
from main import app  # noqa: E402
from services.security import create_access_token  # noqa: E402
from services.storage import LocalAssetStorage  # noqa: E402

TEST_SECRET = "test-secret"


class InMemoryDB:
    """Same interface as services.mongo.MongoDB, kept in dictionaries"""

    def __init__(self):
        self.users: Dict[ObjectId, Dict[str, Any]] = {}
        self.posts: Dict[ObjectId, Dict[str, Any]] = {}
        # when set, every call raises Exception(fail_with)
        self.fail_with: Optional[str] = None

    async def _io(self):
        # yield to the event loop like a real driver call
        await asyncio.sleep(0)
        if self.fail_with:
            raise Exception(self.fail_with)

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        await self._io()
        user = self.users.get(ObjectId(user_id))
        return dict(user) if user else None

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        await self._io()
        for user in self.users.values():
            if user["email"] == email:
                return dict(user)
        return None

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        await self._io()
        now = datetime.now(timezone.utc)
        user = {"_id": ObjectId(), **data, "createdAt": now, "updatedAt": now}
        self.users[user["_id"]] = user
        return dict(user)

    async def get_all_posts(self) -> List[Dict[str, Any]]:
        await self._io()
        return [dict(post) for post in self.posts.values()]

    async def get_user_posts(self, user_id: str) -> List[Dict[str, Any]]:
        await self._io()
        return [dict(post) for post in self.posts.values() if post["userId"] == user_id]

    async def create_post(self, data: Dict[str, Any]) -> Dict[str, Any]:
        await self._io()
        now = datetime.now(timezone.utc)
        post = {"_id": ObjectId(), **data, "createdAt": now, "updatedAt": now}
        self.posts[post["_id"]] = post
        return dict(post)

    async def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        await self._io()
        if not ObjectId.is_valid(post_id):
            return None
        post = self.posts.get(ObjectId(post_id))
        return dict(post) if post else None

    async def toggle_like(self, post_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        await self._io()
        if not ObjectId.is_valid(post_id):
            return None
        post = self.posts.get(ObjectId(post_id))
        if post is None:
            return None
        likes = post.setdefault("likes", {})
        if user_id in likes:
            del likes[user_id]
        else:
            likes[user_id] = True
        post["updatedAt"] = datetime.now(timezone.utc)
        return dict(post, likes=dict(likes))

    def add_user(self, **fields) -> str:
        user = {"_id": ObjectId(), "email": f"{ObjectId()}@example.com", **fields}
        self.users[user["_id"]] = user
        return str(user["_id"])


@pytest.fixture
def db():
    return InMemoryDB()


@pytest.fixture
def assets_dir(tmp_path):
    path = tmp_path / "assets"
    path.mkdir()
    return path


def _client(db, assets_dir, legacy_api: bool):
    test_settings = Settings(
        jwt_secret=TEST_SECRET,
        legacy_api=legacy_api,
        assets_dir=str(assets_dir),
    )
    storage = LocalAssetStorage(str(assets_dir))
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_storage] = lambda: storage
    return TestClient(app)


@pytest.fixture
def client(db, assets_dir):
    """Client for the default (authenticated) API"""
    yield _client(db, assets_dir, legacy_api=False)
    app.dependency_overrides.clear()


@pytest.fixture
def legacy_client(db, assets_dir):
    """Client with LEGACY_API on"""
    yield _client(db, assets_dir, legacy_api=True)
    app.dependency_overrides.clear()


def auth_header(user_id: str, expires_minutes: int = 60) -> Dict[str, str]:
    token = create_access_token(user_id, TEST_SECRET, expires_minutes)
    return {"Authorization": f"Bearer {token}"}
