"""Conversion between request/response schemas and table models."""

import re
from datetime import date
from typing import Iterable, List

from . import models
from .schemas import UserCreate, UserResponse

BIRTH_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class UserMapper:
    """Translate `UserCreate` requests into `User` rows and rows into responses."""

    def from_create(self, dto: UserCreate) -> models.User:
        """Build an unsaved `User` from a request.

        The plaintext password is placed in `password_hash`; the service
        hashes it before persisting. `birth_date` is left unset because it
        must be validated first.
        """
        return models.User(
            id=dto.id,
            username=dto.username,
            password_hash=dto.password,
            first_name=dto.first_name,
            last_name=dto.last_name,
            bio=dto.bio,
            email=dto.email,
            role=dto.role,
        )

    def to_response(self, user: models.User) -> UserResponse:
        return UserResponse(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio,
            email=user.email,
            role=user.role,
            birth_date=user.birth_date,
            registration_date=user.registration_date,
            age=self.calculate_age(user.birth_date),
        )

    def to_response_list(self, users: Iterable[models.User]) -> List[UserResponse]:
        return [self.to_response(u) for u in users]

    @staticmethod
    def parse_birth_date(text: str) -> date:
        """Parse a strict `YYYY-MM-DD` date; raise ValueError otherwise."""
        if not isinstance(text, str) or not BIRTH_DATE_PATTERN.match(text):
            raise ValueError(f"not in YYYY-MM-DD form: {text!r}")
        return date.fromisoformat(text)

    @staticmethod
    def calculate_age(birth_date, today=None) -> int:
        """Whole years elapsed since `birth_date`; 0 when unknown."""
        if birth_date is None:
            return 0
        today = today or date.today()
        years = today.year - birth_date.year
        if (today.month, today.day) < (birth_date.month, birth_date.day):
            years -= 1
        return max(years, 0)
