import logging
import random
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, UploadFile, File, Form, status
from pymongo.errors import DuplicateKeyError

from dependencies import AppSettings, Database, Storage
from models.token import LoginRequest
from services.mongo import public_user
from services.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
        db: Database,
        storage: Storage,
        firstName: Annotated[str, Form(min_length=1, max_length=50)],
        lastName: Annotated[str, Form(min_length=1, max_length=50)],
        email: Annotated[str, Form(min_length=3, max_length=50)],
        password: Annotated[str, Form(min_length=5)],
        location: Annotated[str, Form()] = "",
        occupation: Annotated[str, Form()] = "",
        picturePath: Annotated[str, Form()] = "",
        picture: Annotated[Optional[UploadFile], File()] = None,
):
    """
    Register a user. An optional `picture` file is stored as an asset and
    becomes the user's picturePath unless one is given explicitly.
    """
    try:
        if await db.find_user_by_email(email):
            raise HTTPException(status_code=409, detail="Email already registered")

        if picture is not None and picture.filename:
            stored_name = await storage.upload_file(picture)
            picturePath = picturePath or stored_name

        saved_user = await db.create_user({
            "firstName": firstName,
            "lastName": lastName,
            "email": email,
            "password": hash_password(password),
            "picturePath": picturePath,
            "friends": [],
            "location": location,
            "occupation": occupation,
            "viewedProfile": random.randint(0, 9999),
            "impressions": random.randint(0, 9999),
        })
        return public_user(saved_user)

    except HTTPException:
        raise
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Email already registered")
    except Exception as e:
        logger.error("Error in register: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/login")
async def login(db: Database, settings: AppSettings, request: LoginRequest):
    """Exchange email and password for an access token"""
    try:
        user = await db.find_user_by_email(request.email)
        if not user:
            raise HTTPException(status_code=400, detail="User does not exist.")

        if not verify_password(request.password, user["password"]):
            raise HTTPException(status_code=400, detail="Invalid credentials.")

        token = create_access_token(
            str(user["_id"]),
            settings.jwt_secret,
            settings.jwt_expires_minutes
        )
        return {"token": token, "user": public_user(user)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error in login: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
