"""Sign-in, registration and account administration routes."""

from __future__ import annotations

from dataclasses import replace

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user

from .. import get_repository
from ..auth import admin_required, limiter, login_rate_limit_key, login_rate_limit_value
from ..errors import ConflictError
from ..forms import PERMISSION_FLAGS, parse_permissions_payload, parse_user_payload
from ..repositories import UserRepository
from ..serializers import user_to_dict
from . import deleted, json_body, raise_for_errors

auth_bp = Blueprint("auth", __name__)
users_bp = Blueprint("users", __name__)


@auth_bp.post("/auth/login")
@limiter.limit(
    login_rate_limit_value,
    key_func=login_rate_limit_key,
    methods=["POST"],
    error_message="Too many login attempts. Please try again later.",
)
def login():
    """Start a session for valid credentials.

    Attempts are throttled per remote address and username using the
    ``AUTH_LOGIN_RATE_LIMIT`` setting.
    """

    payload = json_body()
    username = str(payload.get("username") or "").strip()
    password = str(payload.get("password") or "")
    if not username or not password:
        raise_for_errors(["Username and password are required."])
    user = get_repository(UserRepository).authenticate(username, password)
    if user is None:
        current_app.logger.info("Failed login for %s", username)
        return jsonify({"message": "Invalid username or password"}), 401
    login_user(user)
    current_app.logger.info("User %s logged in", user.username)
    return jsonify({"message": "Login successful", "user": user_to_dict(user)})


@auth_bp.post("/auth/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@auth_bp.post("/auth/register")
def register():
    """Create an account.

    Anonymous callers always get a plain ``user`` without permission flags;
    only an admin may choose the role and flags of the new account.
    """

    data, errors = parse_user_payload(json_body())
    raise_for_errors(errors)
    if not (current_user.is_authenticated and current_user.is_admin):
        data = replace(
            data, role="user", permissions={flag: False for flag in PERMISSION_FLAGS}
        )
    user = get_repository(UserRepository).create_user(data)
    return jsonify(user_to_dict(user)), 201


@auth_bp.get("/auth/me")
@login_required
def me():
    return jsonify(user_to_dict(current_user))


@users_bp.get("/users")
@admin_required
def list_users():
    return jsonify([user_to_dict(user) for user in get_repository(UserRepository).list_users()])


@users_bp.post("/users")
@admin_required
def create_user():
    data, errors = parse_user_payload(json_body())
    raise_for_errors(errors)
    user = get_repository(UserRepository).create_user(data)
    return jsonify(user_to_dict(user)), 201


@users_bp.patch("/users/<int:user_id>")
@admin_required
def update_user(user_id: int):
    """Change the role, permission flags or password of an account."""

    changes, errors = parse_permissions_payload(json_body())
    raise_for_errors(errors)
    if user_id == current_user.id and changes.get("role", "admin") != "admin":
        raise ConflictError("You cannot remove your own admin role")
    user = get_repository(UserRepository).update_user(user_id, changes)
    return jsonify(user_to_dict(user))


@users_bp.delete("/users/<int:user_id>")
@admin_required
def delete_user(user_id: int):
    if user_id == current_user.id:
        raise ConflictError("You cannot delete your own account")
    get_repository(UserRepository).delete_user(user_id)
    return deleted("User")
