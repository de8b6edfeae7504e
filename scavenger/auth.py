"""Session identity and admin checks shared by the scavenger routes."""

from __future__ import annotations

from typing import Callable, Optional

from flask import current_app, session
from werkzeug.security import check_password_hash

from models import User

from .errors import ForbiddenError, InvalidArgumentError, UnauthorizedError

SESSION_KEY = "user_email"

UserProvider = Callable[[], Optional[User]]


def session_user() -> Optional[User]:
    """Return the logged-in user for the current session, if any."""
    email = (session.get(SESSION_KEY) or "").strip().lower()
    if not email:
        return None
    return User.query.filter_by(email=email).first()


def require_user(provider: UserProvider) -> User:
    user = provider()
    if not user:
        raise UnauthorizedError("Unauthorized")
    return user


def require_admin(provider: UserProvider) -> User:
    user = require_user(provider)
    if not user.is_admin:
        raise ForbiddenError("Forbidden: Admin access required")
    return user


def login(email: Optional[str], password: Optional[str]) -> User:
    email = email.strip().lower() if isinstance(email, str) else ""
    if not email or not isinstance(password, str) or not password:
        raise InvalidArgumentError("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        current_app.logger.warning("Failed login for %s", email)
        raise UnauthorizedError("Invalid credentials")

    session.permanent = True
    session[SESSION_KEY] = user.email
    return user


def logout() -> None:
    session.pop(SESSION_KEY, None)


def find_user_by_email(email: Optional[str]) -> Optional[User]:
    cleaned = (email or "").strip().lower()
    if not cleaned:
        return None
    return User.query.filter_by(email=cleaned).first()
