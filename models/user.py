from pydantic import BaseModel


class User(BaseModel):
    """The authenticated caller, as identified by their access token"""
    user_id: str
