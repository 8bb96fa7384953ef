"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
Records owned by a user (bookings, friendships, authored achievements)
are removed together with that user.
"""

import enum
from typing import List, Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, date, timezone

# fields the store refuses to change once a user row exists
USER_IMMUTABLE_FIELDS = ("id", "birth_date", "registration_date")

_OWNED = {"cascade": "all, delete-orphan"}


class Role(str, enum.Enum):
    """Authorization tier of a user. Only ADMIN grants cross-account rights."""
    ADMIN = "ADMIN"
    USER = "USER"


class FriendshipStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class User(SQLModel, table=True):
    """A registered account.

    Fields:
    - `username`: unique login name; the unique index is what actually
      prevents two concurrent registrations of the same name
    - `password_hash`: hashed password string (never store plaintext)
    - `birth_date` / `registration_date`: fixed at creation
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str = Field(nullable=False)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    role: Role = Field(default=Role.USER)
    birth_date: date = Field(nullable=False)
    registration_date: date = Field(default_factory=date.today, nullable=False)

    bookings: List["AchievementBooking"] = Relationship(back_populates="user", sa_relationship_kwargs=_OWNED)
    achievements: List["Achievement"] = Relationship(back_populates="author", sa_relationship_kwargs=_OWNED)
    sent_friendships: List["Friendship"] = Relationship(
        back_populates="user_sender",
        sa_relationship_kwargs={**_OWNED, "foreign_keys": "[Friendship.user_sender_id]"},
    )
    received_friendships: List["Friendship"] = Relationship(
        back_populates="user_recipient",
        sa_relationship_kwargs={**_OWNED, "foreign_keys": "[Friendship.user_recipient_id]"},
    )


class Achievement(SQLModel, table=True):
    """An achievement authored by a user that others can book."""
    __tablename__ = "achievements"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    author_id: int = Field(foreign_key="users.id", nullable=False)
    author: Optional[User] = Relationship(back_populates="achievements")
    bookings: List["AchievementBooking"] = Relationship(back_populates="achievement", sa_relationship_kwargs=_OWNED)


class AchievementBooking(SQLModel, table=True):
    """A user's claim on an achievement; `completed` flips once."""
    __tablename__ = "achievement_bookings"
    __table_args__ = (UniqueConstraint("achievement_id", "user_id", name="uq_booking_achievement_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    achievement_id: int = Field(foreign_key="achievements.id", nullable=False)
    user_id: int = Field(foreign_key="users.id", nullable=False)
    completed: bool = False
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), nullable=False)
    achievement: Optional[Achievement] = Relationship(back_populates="bookings")
    user: Optional[User] = Relationship(back_populates="bookings")


class Friendship(SQLModel, table=True):
    """A friendship request from `user_sender` to `user_recipient`."""
    __tablename__ = "friendships"

    id: Optional[int] = Field(default=None, primary_key=True)
    status: FriendshipStatus = Field(default=FriendshipStatus.PENDING)
    user_sender_id: int = Field(foreign_key="users.id", nullable=False)
    user_recipient_id: int = Field(foreign_key="users.id", nullable=False)
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), nullable=False)
    user_sender: Optional[User] = Relationship(
        back_populates="sent_friendships",
        sa_relationship_kwargs={"foreign_keys": "[Friendship.user_sender_id]"},
    )
    user_recipient: Optional[User] = Relationship(
        back_populates="received_friendships",
        sa_relationship_kwargs={"foreign_keys": "[Friendship.user_recipient_id]"},
    )
