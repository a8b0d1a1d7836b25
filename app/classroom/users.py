from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from app.classroom.models import User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class DuplicateEmailError(ValueError):
    """Raised when the store rejects a second user with the same email."""


def find_user_by_email(s: "Session", email: str) -> User | None:
    return s.query(User).filter(User.email == email).one_or_none()


def create_user(s: "Session", *, name: str | None, email: str) -> User:
    """
    Insert a user and flush so the store assigns its id.

    The unique index on users.email is the real guard against duplicates;
    callers may pre-check with find_user_by_email for a friendlier message,
    but two concurrent registrations can both pass that check.
    """
    user = User(name=name, email=email)
    s.add(user)
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise DuplicateEmailError(email) from e
    return user
