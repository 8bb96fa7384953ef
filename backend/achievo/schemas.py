"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Response shapes never carry a password
or password hash.
"""

from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from .models import Role


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class UserCreate(BaseModel):
    """Create/update request for a user.

    `birth_date` is kept as text so that the service can reject anything
    not written as `YYYY-MM-DD`. On update, `id`, `role` and `birth_date`
    are accepted but ignored.
    """
    id: Optional[int] = None
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    role: Role = Role.USER
    birth_date: str


class UserResponse(BaseModel):
    """User as returned to callers."""
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    role: Role
    birth_date: date
    registration_date: date
    age: int


class AchievementCreate(BaseModel):
    name: str
    description: Optional[str] = None


class AchievementResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    author_id: int

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    id: int
    achievement_id: int
    user_id: int
    completed: bool
    time: datetime

    model_config = ConfigDict(from_attributes=True)
