"""Helpers for working with users."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.user import User


def placeholder_email(user_id: UUID) -> str:
    return f"{user_id}@{settings.placeholder_email_domain}"


def upsert_user(db: Session, user_id: UUID, email: Optional[str] = None) -> User:
    """
    Fetch or create the user row, refreshing the email when one is supplied.

    Must run before anything else is written in the session: a concurrent insert
    of the same id rolls the session back.
    """
    user = db.get(User, user_id)
    if user:
        if email and user.email != email:
            user.email = email
            db.flush()
        return user

    user = User(id=user_id, email=email or placeholder_email(user_id))
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
