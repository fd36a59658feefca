import html
from typing import Optional

import bleach
from pydantic import BaseModel, field_validator


class PostCreate(BaseModel):
    userId: str
    description: str = ""
    picturePath: Optional[str] = ""

    @field_validator("description")
    @classmethod
    def strip_tags(cls, value: str) -> str:
        # markup is removed, plain text (&, <, >) is kept as submitted
        return html.unescape(bleach.clean(value, tags=[], strip=True))


class LikeRequest(BaseModel):
    # defaults to the authenticated caller when omitted
    userId: Optional[str] = None
