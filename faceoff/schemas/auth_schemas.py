from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str


class LoginRequest(BaseModel):
    username: str
    password: str


class AdminRead(BaseModel):
    id: int
    username: str
    is_active: bool
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
