"""HTTP blueprints for the billing API.

Each module exposes one :class:`flask.Blueprint`; :func:`create_app` mounts
them all under ``/api``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from flask import abort, jsonify, request

from ..errors import ValidationFailed


def json_body() -> Dict[str, Any]:
    """Return the decoded JSON object or abort with ``400``."""

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object.")
    return payload


def query_int(name: str) -> Optional[int]:
    """Parse an optional positive integer query argument."""

    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationFailed([f"{name} must be an integer."]) from None
    if value <= 0:
        raise ValidationFailed([f"{name} must be greater than 0."])
    return value


def raise_for_errors(errors: Iterable[str]) -> None:
    errors = list(errors)
    if errors:
        raise ValidationFailed(errors)


def deleted(entity: str):
    return jsonify({"message": f"{entity} deleted successfully"})
