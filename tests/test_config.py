"""Tests for environment driven configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from freight_billing.config import load_config


def test_load_config_reads_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    db_path = tmp_path / "nested" / "billing.db"
    monkeypatch.setenv("BILLING_DATABASE", f"sqlite:///{db_path}")
    monkeypatch.setenv("BILLING_SECRET_KEY", "from-env")
    monkeypatch.setenv("BILLING_LOG_LEVEL", "debug")
    monkeypatch.setenv("BILLING_REPORT_DAYS", "30")
    monkeypatch.setenv("BILLING_LOGIN_RATE_LIMIT", "10 per hour")

    config = load_config()

    assert config.database_url == f"sqlite:///{db_path}"
    assert db_path.parent.is_dir()
    assert config.secret_key == "from-env"
    assert config.log_level == "DEBUG"
    assert config.report_days == 30
    assert config.login_rate_limit == "10 per hour"
    assert config.ratelimit_storage_uri == "memory://"


def test_missing_secret_key_is_generated_with_warning(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setenv("BILLING_DATABASE", f"sqlite:///{tmp_path / 'x.db'}")
    monkeypatch.delenv("BILLING_SECRET_KEY", raising=False)

    with caplog.at_level(logging.WARNING, logger="freight_billing.config"):
        first = load_config().secret_key
        second = load_config().secret_key

    assert first and second and first != second
    assert "BILLING_SECRET_KEY" in caplog.text


def test_invalid_integer_setting_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BILLING_DATABASE", "sqlite:///:memory:")
    monkeypatch.setenv("BILLING_REPORT_DAYS", "ninety")

    with pytest.raises(ValueError, match="BILLING_REPORT_DAYS must be an integer"):
        load_config()


def test_unknown_log_level_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BILLING_DATABASE", "sqlite:///:memory:")
    monkeypatch.setenv("BILLING_SECRET_KEY", "x")
    monkeypatch.setenv("BILLING_LOG_LEVEL", "verbose")

    with pytest.raises(ValueError, match="BILLING_LOG_LEVEL must be one of .* got 'VERBOSE'"):
        load_config()


def test_blank_log_level_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BILLING_DATABASE", "sqlite:///:memory:")
    monkeypatch.setenv("BILLING_SECRET_KEY", "x")
    monkeypatch.setenv("BILLING_LOG_LEVEL", "  ")

    assert load_config().log_level == "INFO"
