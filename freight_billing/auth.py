"""Session authentication, login throttling and permission checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Callable, Optional

from flask import abort, current_app, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, UserMixin, current_user

login_manager = LoginManager()
limiter = Limiter(key_func=get_remote_address)

ADMIN_ROLE = "admin"


@dataclass
class User(UserMixin):
    """Account able to sign in to the billing API."""

    username: str
    password_hash: str = ""
    role: str = "user"
    can_manage_categories: bool = False
    can_edit_bills: bool = False
    can_create_bills: bool = False
    can_view_revenue_pricing: bool = False
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def has_permission(self, flag: str) -> bool:
        """Return whether the account holds ``flag``; admins hold every flag."""

        return self.is_admin or bool(getattr(self, flag, False))


@login_manager.user_loader
def load_user(user_id: str) -> Optional[User]:
    from . import get_repository
    from .repositories import UserRepository

    try:
        return get_repository(UserRepository).find_user(int(user_id))
    except ValueError:
        return None


@login_manager.unauthorized_handler
def unauthorized():
    abort(401)


def login_rate_limit_value() -> str:
    """Return the configured limit string for login attempts.

    Reads ``AUTH_LOGIN_RATE_LIMIT`` from the app config so deployments can
    tune throttling without code changes.
    """

    value = current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    return str(value or "5 per minute")


def login_rate_limit_key() -> str:
    """Scope login attempts by remote address and submitted username."""

    base_ip = request.remote_addr or get_remote_address()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    username = str(payload.get("username") or "").strip().lower()
    return f"{base_ip}:{username}" if username else base_ip


def permission_required(flag: str) -> Callable:
    """Protect a view behind one of the user permission flags.

    Unauthenticated callers receive ``401``. Authenticated users lacking
    ``flag`` receive ``403``. Admins always pass.

    Args:
        flag: Attribute name on :class:`User`, e.g. ``"can_edit_bills"``.
    """

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.has_permission(flag):
                abort(403)
            return view(*args, **kwargs)

        return wrapped

    return decorator


def admin_required(view: Callable) -> Callable:
    """Restrict a view to accounts with the ``admin`` role."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if not current_user.is_admin:
            abort(403)
        return view(*args, **kwargs)

    return wrapped
