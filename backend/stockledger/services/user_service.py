# Overview: Service-layer operations for users; identity and role only.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import ROLES, is_known_role
from ..validation import is_row_id
from .concurrency import unit_of_work


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id) if is_row_id(user_id) else None
    if user is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)
    return user


def get_active_user(user_id: int) -> User | None:
    """Resolve an actor for a request; None when unknown or deactivated."""
    if not is_row_id(user_id):
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def create_user(*, username: str, role: str, full_name: str | None = None) -> User:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required", field="username")
    if not is_known_role(role):
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", field="role")

    with unit_of_work() as session:
        if session.query(User).filter_by(username=username).first():
            raise ConflictError(f"Username {username} already exists", username=username)
        user = User(username=username, role=role, full_name=full_name, is_active=True)
        session.add(user)
        session.flush()

    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()
