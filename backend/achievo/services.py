"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
the password hasher and the schema mappers. Services perform validation,
make the permission decision and persist aggregates via repositories.
Failures are raised as the typed errors from `errors` and are logged
right before they propagate.

The existence checks in `UserService` are plain read-then-write
pre-checks; the unique index on `users.username` (translated by
`UserRepository.save`) is what actually stops concurrent duplicates.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import AccessDenied, IncorrectData, ObjectAlreadyExists, ObjectNotFound
from .logutil import get_logger
from .mappers import UserMapper
from .schemas import AchievementCreate, UserCreate, UserResponse

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

logger = get_logger("achievo.services")


class PasswordHasher:
    """One-way password hashing backed by the passlib context."""

    def hash(self, password: str) -> str:
        return PWD_CTX.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return PWD_CTX.verify(password, hashed)


def _fail(exc_type, msg: str):
    logger.error(msg)
    return exc_type(msg)


class UserService:
    """Create, read, update and delete user accounts."""
    def __init__(self, session: Session, user_repo: Optional[repositories.UserRepository] = None,
                 hasher: Optional[PasswordHasher] = None, mapper: Optional[UserMapper] = None):
        self.session = session
        self.user_repo = user_repo or repositories.UserRepository(session)
        self.hasher = hasher or PasswordHasher()
        self.mapper = mapper or UserMapper()

    def add_user(self, dto: UserCreate) -> UserResponse:
        """Register a new user.

        Used both for self-registration and for administrators adding
        accounts. Checks run in order and stop at the first failure:
        username taken, explicit id taken, birth date not `YYYY-MM-DD`.
        The password is hashed before the row is stored.
        """
        user = self.mapper.from_create(dto)
        user.birth_date = self._check_conditions_for_add(user, dto.birth_date)
        user.password_hash = self.hasher.hash(user.password_hash)
        user = self.user_repo.save(user)
        logger.info("user %s added", user.username)
        return self.mapper.to_response(user)

    def _check_conditions_for_add(self, user: models.User, birth_date: str):
        if self.user_repo.get_by_username(user.username) is not None:
            raise _fail(ObjectAlreadyExists, f"user with username {user.username} already exists")
        if self.user_repo.exists_by_id(user.id):
            raise _fail(ObjectAlreadyExists, f"user with id {user.id} already exists")
        try:
            return self.mapper.parse_birth_date(birth_date)
        except ValueError:
            raise _fail(IncorrectData, f"date {birth_date} is invalid, expected YYYY-MM-DD") from None

    def get_user_by_id(self, user_id: int) -> UserResponse:
        return self.mapper.to_response(self._get_or_404(user_id))

    def get_all_users(self) -> List[UserResponse]:
        """Return every user in store order. No sort or paging is applied."""
        return self.mapper.to_response_list(self.user_repo.list_all())

    def update_user(self, dto: UserCreate, acting_username: str) -> UserResponse:
        """Update the acting user's own profile.

        Only username, password, names, email and bio are taken from the
        request; id, role, birth date and registration date never change.
        """
        user = self.user_repo.get_by_username(acting_username)
        if user is None:
            raise _fail(ObjectNotFound, f"user with username {acting_username} does not exist")

        if dto.username != acting_username and self.user_repo.get_by_username(dto.username) is not None:
            raise _fail(ObjectAlreadyExists, f"user with username {dto.username} already exists")

        user.username = dto.username
        user.password_hash = self.hasher.hash(dto.password)
        user.first_name = dto.first_name
        user.last_name = dto.last_name
        user.email = dto.email
        user.bio = dto.bio

        user = self.user_repo.save(user)
        logger.info("user %s updated", user.username)
        return self.mapper.to_response(user)

    def delete_user_by_id(self, user_id: int, acting_username: str) -> None:
        """Delete a user. Allowed for the account owner or an ADMIN."""
        user = self._get_or_404(user_id)
        requester = self.user_repo.get_by_username(acting_username)
        if requester is None:
            raise _fail(ObjectNotFound, f"requesting user {acting_username} not found")

        if requester.username != user.username and requester.role != models.Role.ADMIN:
            raise _fail(AccessDenied, f"user {acting_username} may not delete account {user.username}")

        username = user.username
        self.user_repo.delete(user)
        logger.info("user %s deleted", username)

    def _get_or_404(self, user_id: int) -> models.User:
        user = self.user_repo.get(user_id)
        if user is None:
            raise _fail(ObjectNotFound, f"user with id {user_id} does not exist")
        return user


class AuthService:
    """Authentication related operations (credential check + token)."""
    def __init__(self, session: Session, hasher: Optional[PasswordHasher] = None):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.hasher = hasher or PasswordHasher()

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not self.hasher.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class AchievementService:
    """Author achievements and manage users' bookings of them."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.achievement_repo = repositories.AchievementRepository(session)
        self.booking_repo = repositories.AchievementBookingRepository(session)

    def add_achievement(self, dto: AchievementCreate, acting_username: str) -> models.Achievement:
        author = self._get_user(acting_username)
        if not dto.name or not dto.name.strip():
            raise _fail(IncorrectData, "achievement name must not be empty")
        achievement = models.Achievement(name=dto.name.strip(), description=dto.description, author_id=author.id)
        achievement = self.achievement_repo.save(achievement)
        logger.info("achievement %s added by %s", achievement.name, author.username)
        return achievement

    def get_achievement_by_id(self, achievement_id: int) -> models.Achievement:
        achievement = self.achievement_repo.get(achievement_id)
        if achievement is None:
            raise _fail(ObjectNotFound, f"achievement with id {achievement_id} does not exist")
        return achievement

    def get_all_achievements(self) -> List[models.Achievement]:
        return self.achievement_repo.list_all()

    def delete_achievement(self, achievement_id: int, acting_username: str) -> None:
        """Delete an achievement and its bookings. Author or ADMIN only."""
        achievement = self.get_achievement_by_id(achievement_id)
        requester = self._get_user(acting_username)
        if achievement.author_id != requester.id and requester.role != models.Role.ADMIN:
            raise _fail(AccessDenied, f"user {acting_username} may not delete achievement {achievement_id}")
        self.achievement_repo.delete(achievement)
        logger.info("achievement %s deleted by %s", achievement_id, acting_username)

    def book_achievement(self, achievement_id: int, acting_username: str) -> models.AchievementBooking:
        achievement = self.get_achievement_by_id(achievement_id)
        user = self._get_user(acting_username)
        if self.booking_repo.get_for_user_and_achievement(user.id, achievement.id) is not None:
            raise _fail(ObjectAlreadyExists, f"user {acting_username} already booked achievement {achievement_id}")
        booking = self.booking_repo.save(models.AchievementBooking(achievement_id=achievement.id, user_id=user.id))
        logger.info("achievement %s booked by %s", achievement_id, acting_username)
        return booking

    def complete_booking(self, booking_id: int, acting_username: str) -> models.AchievementBooking:
        booking = self.booking_repo.get(booking_id)
        if booking is None:
            raise _fail(ObjectNotFound, f"booking with id {booking_id} does not exist")
        user = self._get_user(acting_username)
        if booking.user_id != user.id:
            raise _fail(AccessDenied, f"user {acting_username} may not complete booking {booking_id}")
        if booking.completed:
            raise _fail(IncorrectData, f"booking {booking_id} is already completed")
        booking.completed = True
        booking = self.booking_repo.save(booking)
        logger.info("booking %s completed by %s", booking_id, acting_username)
        return booking

    def get_bookings_for_user(self, acting_username: str) -> List[models.AchievementBooking]:
        return self.booking_repo.list_for_user(self._get_user(acting_username).id)

    def _get_user(self, username: str) -> models.User:
        user = self.user_repo.get_by_username(username)
        if user is None:
            raise _fail(ObjectNotFound, f"user with username {username} does not exist")
        return user
