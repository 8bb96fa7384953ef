"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
achievements, bookings). Repositories return SQLModel objects and every
write is its own unit of work: it commits on success and rolls back on
failure, so a caller never observes a half-applied change.
"""

from typing import List, Optional
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from . import errors, models
from .logutil import get_logger

logger = get_logger("achievo.store")


class _Repository:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self, obj, conflict_msg):
        """Commit `obj`, turning a constraint violation into ObjectAlreadyExists.

        `conflict_msg` is a string or a callable producing one; a callable
        runs after the rollback so it can query the store.
        """
        self.session.add(obj)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if callable(conflict_msg):
                conflict_msg = conflict_msg()
            logger.error(conflict_msg)
            raise errors.ObjectAlreadyExists(conflict_msg) from exc
        self.session.refresh(obj)
        return obj

    def _remove(self, obj) -> None:
        self.session.delete(obj)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise


class UserRepository(_Repository):
    """CRUD operations for `User` objects."""

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def exists_by_id(self, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        stmt = select(models.User.id).where(models.User.id == user_id)
        return self.session.exec(stmt).first() is not None

    def list_all(self) -> List[models.User]:
        """Return every user in store order (no sort is applied)."""
        return list(self.session.exec(select(models.User)).all())

    def save(self, user: models.User) -> models.User:
        """Insert or update `user`.

        For rows that already exist, changes to `id`, `birth_date` or
        `registration_date` are refused before anything is flushed. A
        duplicate username that slipped past the service's pre-check is
        caught by the unique index and reported as ObjectAlreadyExists.
        """
        state = sa_inspect(user)
        if state.persistent:
            changed = [name for name in models.USER_IMMUTABLE_FIELDS if state.attrs[name].history.has_changes()]
            if changed:
                self.session.rollback()
                msg = f"fields {', '.join(changed)} of user {user.username} cannot be changed"
                logger.error(msg)
                raise errors.IncorrectData(msg)
        username, user_id, is_new = user.username, user.id, not state.persistent

        def conflict():
            if is_new and self.exists_by_id(user_id):
                return f"user with id {user_id} already exists"
            return f"user with username {username} already exists"

        return self._commit(user, conflict)

    def delete(self, user: models.User) -> None:
        self._remove(user)


class AchievementRepository(_Repository):
    """CRUD operations for `Achievement` records."""

    def get(self, achievement_id: int) -> Optional[models.Achievement]:
        return self.session.get(models.Achievement, achievement_id)

    def list_all(self) -> List[models.Achievement]:
        return list(self.session.exec(select(models.Achievement)).all())

    def save(self, achievement: models.Achievement) -> models.Achievement:
        return self._commit(achievement, f"achievement {achievement.name} already exists")

    def delete(self, achievement: models.Achievement) -> None:
        self._remove(achievement)


class AchievementBookingRepository(_Repository):
    """Persist bookings of achievements by users."""

    def get(self, booking_id: int) -> Optional[models.AchievementBooking]:
        return self.session.get(models.AchievementBooking, booking_id)

    def get_for_user_and_achievement(self, user_id: int, achievement_id: int) -> Optional[models.AchievementBooking]:
        stmt = select(models.AchievementBooking).where(
            models.AchievementBooking.user_id == user_id,
            models.AchievementBooking.achievement_id == achievement_id
        )
        return self.session.exec(stmt).first()

    def list_for_user(self, user_id: int) -> List[models.AchievementBooking]:
        """Return a user's bookings, oldest first."""
        stmt = (
            select(models.AchievementBooking)
            .where(models.AchievementBooking.user_id == user_id)
            .order_by(models.AchievementBooking.time, models.AchievementBooking.id)
        )
        return list(self.session.exec(stmt).all())

    def list_all(self) -> List[models.AchievementBooking]:
        return list(self.session.exec(select(models.AchievementBooking)).all())

    def save(self, booking: models.AchievementBooking) -> models.AchievementBooking:
        return self._commit(
            booking,
            f"user {booking.user_id} already booked achievement {booking.achievement_id}"
        )

    def delete(self, booking: models.AchievementBooking) -> None:
        self._remove(booking)
