"""Key/value application settings."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from .. import get_repository
from ..auth import admin_required
from ..forms import parse_setting_payload
from ..repositories import SettingsRepository
from ..serializers import setting_to_dict
from . import deleted, json_body, raise_for_errors

settings_bp = Blueprint("settings", __name__)


@settings_bp.get("/settings")
@login_required
def list_settings():
    settings = get_repository(SettingsRepository).list_settings()
    return jsonify([setting_to_dict(item) for item in settings])


@settings_bp.get("/settings/<key>")
@login_required
def get_setting(key: str):
    return jsonify(setting_to_dict(get_repository(SettingsRepository).get_setting(key)))


@settings_bp.put("/settings/<key>")
@admin_required
def put_setting(key: str):
    setting, errors = parse_setting_payload(key, json_body())
    raise_for_errors(errors)
    saved = get_repository(SettingsRepository).upsert_setting(setting)
    return jsonify(setting_to_dict(saved))


@settings_bp.delete("/settings/<key>")
@admin_required
def delete_setting(key: str):
    get_repository(SettingsRepository).delete_setting(key)
    return deleted("Setting")
