"""User accounts and password checks."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import NoResultFound
from werkzeug.security import check_password_hash, generate_password_hash

from ..auth import User
from ..database import session_scope, users
from ..errors import ConflictError
from ..forms import PERMISSION_FLAGS, UserFormData
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Stores accounts with werkzeug password hashes."""

    def list_users(self) -> List[User]:
        with session_scope(self._engine) as session:
            rows = session.execute(select(users).order_by(users.c.username)).all()
        return [self._row_to_user(row) for row in rows]

    def get_user(self, user_id: int) -> User:
        with session_scope(self._engine) as session:
            row = self._require(session, users, user_id, "User")
        return self._row_to_user(row)

    def find_user(self, user_id: int) -> Optional[User]:
        try:
            return self.get_user(user_id)
        except NoResultFound:
            return None

    def find_by_username(self, username: str) -> Optional[User]:
        with session_scope(self._engine) as session:
            row = session.execute(
                select(users).where(
                    func.lower(users.c.username) == username.strip().lower()
                )
            ).one_or_none()
        return self._row_to_user(row) if row is not None else None

    def create_user(self, data: UserFormData) -> User:
        """Create an account.

        Raises:
            ConflictError: If the username is already registered.
        """

        values: Dict[str, Any] = {
            "username": data.username,
            "password_hash": generate_password_hash(data.password),
            "role": data.role,
        }
        for flag in PERMISSION_FLAGS:
            values[flag] = bool(data.permissions.get(flag, False))
        with session_scope(self._engine) as session:
            if self._exists(
                session,
                users,
                func.lower(users.c.username) == data.username.lower(),
            ):
                raise ConflictError("Username already exists")
            user_id = session.execute(
                insert(users).values(**values).returning(users.c.id)
            ).scalar_one()
        return self.get_user(user_id)

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> User:
        """Apply role, permission flag or password changes to an account."""

        values = {key: value for key, value in changes.items() if key != "password"}
        if changes.get("password"):
            values["password_hash"] = generate_password_hash(changes["password"])
        with session_scope(self._engine) as session:
            self._require(session, users, user_id, "User")
            if values:
                session.execute(
                    update(users).where(users.c.id == user_id).values(**values)
                )
        return self.get_user(user_id)

    def delete_user(self, user_id: int) -> None:
        with session_scope(self._engine) as session:
            self._require(session, users, user_id, "User")
            session.execute(delete(users).where(users.c.id == user_id))
        self._log_delete("User", user_id)

    def count_users(self) -> int:
        with session_scope(self._engine) as session:
            return session.execute(select(func.count()).select_from(users)).scalar_one()

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the account when ``password`` matches, else ``None``."""

        user = self.find_by_username(username)
        if user is None or not check_password_hash(user.password_hash, password):
            return None
        return user

    @staticmethod
    def _row_to_user(row) -> User:
        values = row._mapping
        return User(
            id=values["id"],
            username=values["username"],
            password_hash=values["password_hash"],
            role=values["role"],
            can_manage_categories=values["can_manage_categories"],
            can_edit_bills=values["can_edit_bills"],
            can_create_bills=values["can_create_bills"],
            can_view_revenue_pricing=values["can_view_revenue_pricing"],
            created_at=values["created_at"],
        )
