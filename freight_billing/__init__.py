"""Freight Billing Flask application factory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

import click
from flask import Flask, current_app, g

from .auth import limiter, login_manager
from .config import AppConfig, load_config
from .database import create_db_engine, init_schema
from .errors import register_error_handlers
from .repositories import BaseRepository

RepositoryT = TypeVar("RepositoryT", bound=BaseRepository)


def create_app(config: AppConfig | None = None) -> Flask:
    """Build and configure the Freight Billing Flask application instance.

    Args:
        config: Optional :class:`AppConfig` override. When ``None`` the helper
            loads configuration via :func:`load_config`, which honours the
            ``BILLING_*`` environment variables.

    Returns:
        Flask: Fully initialised application. The SQLAlchemy engine is stored
        on ``app.config['DB_ENGINE']`` for the repositories and every JSON
        endpoint is mounted under ``/api``.

    External Dependencies:
        * Calls :func:`create_db_engine` and :func:`init_schema` to prepare the
          database schema on startup.
        * Initialises :data:`login_manager` (``flask_login``) and
          :data:`limiter` (``flask_limiter``).
    """

    app = Flask(__name__, instance_relative_config=True)
    app_config = config or load_config()
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    app.logger.setLevel(app_config.log_level)
    logging.getLogger("freight_billing").setLevel(app_config.log_level)
    logging.getLogger("packages.freight_common").setLevel(app_config.log_level)

    app.config.update(
        SECRET_KEY=app_config.secret_key,
        MAX_CONTENT_LENGTH=app_config.max_content_length,
        REPORT_DAYS=app_config.report_days,
        AUTH_LOGIN_RATE_LIMIT=app_config.login_rate_limit,
        RATELIMIT_STORAGE_URI=app_config.ratelimit_storage_uri,
        RATELIMIT_ENABLED=app_config.ratelimit_enabled,
        JSON_SORT_KEYS=False,
    )
    engine = create_db_engine(app_config.database_url)
    init_schema(engine)
    app.config["DB_ENGINE"] = engine

    login_manager.init_app(app)
    limiter.init_app(app)
    register_error_handlers(app)

    from .blueprints.auth import auth_bp, users_bp
    from .blueprints.bills import bills_bp
    from .blueprints.catalog import catalog_bp
    from .blueprints.pricing import pricing_bp
    from .blueprints.reports import reports_bp
    from .blueprints.settings import settings_bp

    for blueprint in (
        auth_bp,
        users_bp,
        catalog_bp,
        bills_bp,
        pricing_bp,
        reports_bp,
        settings_bp,
    ):
        app.register_blueprint(blueprint, url_prefix="/api")

    @app.teardown_appcontext
    def teardown(_: Any) -> None:
        g.pop("repositories", None)

    _register_commands(app)
    app.logger.info("Freight Billing ready (database: %s)", engine.url.render_as_string())
    return app


def _register_commands(app: Flask) -> None:
    engine = app.config["DB_ENGINE"]

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Initialize the database tables."""

        init_schema(engine)
        click.echo("Database initialized.")

    @app.cli.command("create-admin")
    @click.argument("username")
    @click.argument("password")
    def create_admin_command(username: str, password: str) -> None:
        """Create an administrator account."""

        from .errors import ConflictError
        from .forms import parse_user_payload
        from .repositories import UserRepository

        data, errors = parse_user_payload(
            {"username": username, "password": password, "role": "admin"}
        )
        if errors or data is None:
            raise click.ClickException(" ".join(errors))
        try:
            user = UserRepository(engine).create_user(data)
        except ConflictError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Created admin {user.username}.")

    @app.cli.command("import-cost-prices")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
    def import_cost_prices_command(path: Path) -> None:
        """Upsert cost prices from a CSV price sheet."""

        from .imports import import_cost_prices
        from .repositories import CatalogRepository, PricingRepository

        try:
            result = import_cost_prices(
                path, CatalogRepository(engine), PricingRepository(engine)
            )
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        for error in result.errors:
            click.echo(error, err=True)
        click.echo(
            f"Imported {result.imported} cost prices "
            f"({result.created} created, {result.updated} updated)."
        )


def get_repository(repo_cls: Type[RepositoryT]) -> RepositoryT:
    """Return a repository of ``repo_cls`` cached for the active request.

    Returns:
        RepositoryT: Lazily constructed instance stored on :mod:`flask.g` so
        blueprints share one instance per class within a request lifecycle.

    External Dependencies:
        * Reads ``current_app.config['DB_ENGINE']`` set during
          :func:`create_app`.
    """

    if not hasattr(g, "repositories"):
        g.repositories = {}
    cache: Dict[type, BaseRepository] = g.repositories
    if repo_cls not in cache:
        cache[repo_cls] = repo_cls(current_app.config["DB_ENGINE"])
    return cache[repo_cls]  # type: ignore[return-value]


__all__ = ["create_app", "AppConfig", "get_repository"]
