"""Exceptions and JSON error handlers shared by every blueprint."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from flask import Flask, Response, current_app, jsonify
from sqlalchemy.exc import NoResultFound
from werkzeug.exceptions import HTTPException


class ConflictError(Exception):
    """Raised when a write would break a business rule.

    Examples are duplicate names, a second price for the same customer and
    service, or deleting a customer that still has bills.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(Exception):
    """Raised by handlers that want the standard validation response."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


def validation_response(errors: Iterable[str]) -> Tuple[Response, int]:
    return jsonify({"message": "Validation error", "errors": list(errors)}), 400


def not_found(entity: str) -> Tuple[Response, int]:
    return jsonify({"message": f"{entity} not found"}), 404


def register_error_handlers(app: Flask) -> None:
    """Render application errors as JSON bodies.

    Args:
        app: Application receiving the handlers.
    """

    @app.errorhandler(ConflictError)
    def handle_conflict(exc: ConflictError):
        current_app.logger.info("Rejected write: %s", exc.message)
        return jsonify({"message": exc.message}), 400

    @app.errorhandler(ValidationFailed)
    def handle_validation(exc: ValidationFailed):
        return validation_response(exc.errors)

    @app.errorhandler(NoResultFound)
    def handle_missing(exc: NoResultFound):
        return jsonify({"message": str(exc) or "Not found"}), 404

    @app.errorhandler(401)
    def handle_unauthorized(_exc: HTTPException):
        return jsonify({"message": "Authentication required"}), 401

    @app.errorhandler(403)
    def handle_forbidden(_exc: HTTPException):
        return jsonify({"message": "Permission denied"}), 403

    @app.errorhandler(429)
    def handle_rate_limited(exc: HTTPException):
        return jsonify({"message": f"Too many requests: {exc.description}"}), 429

    @app.errorhandler(HTTPException)
    def handle_http(exc: HTTPException):
        return jsonify({"message": exc.description}), exc.code or 500
