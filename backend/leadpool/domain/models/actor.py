"""
Actor Model
The authenticated user on whose behalf an operation runs
"""
from pydantic import BaseModel
from typing import Optional
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    AGENT = "agent"


class Actor(BaseModel):
    """Authenticated call-center user"""
    id: str
    email: str
    name: Optional[str] = None
    role: str = Role.AGENT.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
