"""Configuration helpers for the Freight Billing web application."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from secrets import token_urlsafe

DEFAULT_DATABASE = "sqlite:///" + str(Path("instance/billing.db").resolve())
DEFAULT_REPORT_DAYS = 90
DEFAULT_LOGIN_RATE_LIMIT = "5 per minute"
DEFAULT_MAX_CONTENT_LENGTH = 16 * 1024 * 1024


@dataclass(slots=True)
class AppConfig:
    """Settings loaded from environment variables."""

    database_url: str
    secret_key: str
    log_level: str = "INFO"
    report_days: int = DEFAULT_REPORT_DAYS
    login_rate_limit: str = DEFAULT_LOGIN_RATE_LIMIT
    ratelimit_storage_uri: str = "memory://"
    ratelimit_enabled: bool = True
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH


def _resolve_secret_key() -> str:
    """Return ``BILLING_SECRET_KEY`` or a one-time key with a warning."""

    configured = os.getenv("BILLING_SECRET_KEY")
    if configured:
        return configured

    logging.getLogger("freight_billing.config").warning(
        "BILLING_SECRET_KEY environment variable is not set; generated a one-time key."
    )
    return token_urlsafe(32)


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _log_level_from_env(name: str, default: str) -> str:
    level = (os.getenv(name) or "").strip().upper() or default
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(
            f"{name} must be one of CRITICAL, ERROR, WARNING, INFO or DEBUG, got {level!r}"
        )
    return level


def load_config() -> AppConfig:
    """Create an :class:`AppConfig` instance from environment variables.

    Recognised variables:

    * ``BILLING_DATABASE``: SQLAlchemy URL, defaults to
      ``instance/billing.db`` under the working directory.
    * ``BILLING_SECRET_KEY``: Flask session key.
    * ``BILLING_LOG_LEVEL``: Root level for the application logger.
    * ``BILLING_REPORT_DAYS``: Window used by reports when no timeframe is
      supplied.
    * ``BILLING_LOGIN_RATE_LIMIT`` and ``BILLING_RATELIMIT_STORAGE_URI``:
      Throttling of login attempts via :mod:`flask_limiter`.
    * ``BILLING_MAX_CONTENT_LENGTH``: Upload size cap in bytes.

    Raises:
        ValueError: If a numeric variable or the log level cannot be parsed.
    """

    database = os.getenv("BILLING_DATABASE", DEFAULT_DATABASE)
    if database.startswith("sqlite:///") and database != "sqlite:///:memory:":
        Path(database.removeprefix("sqlite:///")).parent.mkdir(
            parents=True, exist_ok=True
        )
    return AppConfig(
        database_url=database,
        secret_key=_resolve_secret_key(),
        log_level=_log_level_from_env("BILLING_LOG_LEVEL", "INFO"),
        report_days=_int_from_env("BILLING_REPORT_DAYS", DEFAULT_REPORT_DAYS),
        login_rate_limit=os.getenv("BILLING_LOGIN_RATE_LIMIT")
        or DEFAULT_LOGIN_RATE_LIMIT,
        ratelimit_storage_uri=os.getenv("BILLING_RATELIMIT_STORAGE_URI")
        or "memory://",
        max_content_length=_int_from_env(
            "BILLING_MAX_CONTENT_LENGTH", DEFAULT_MAX_CONTENT_LENGTH
        ),
    )
