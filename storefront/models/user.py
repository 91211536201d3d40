"""User identity as carried in the bearer token"""

from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """Authenticated user"""
    id: str
    email: Optional[str] = None
    is_admin: bool = False
