"""Tests for the development server entry point."""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest


@pytest.fixture()
def billing_app(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("BILLING_DATABASE", f"sqlite:///{tmp_path / 'entry.db'}")
    monkeypatch.setenv("BILLING_SECRET_KEY", "entry-point")
    return importlib.import_module("billing_app")


def test_debug_is_off_when_unset(
    billing_app, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("FLASK_DEBUG", raising=False)
    assert billing_app.debug_from_env() is False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), (" ON ", True), ("yes", True), ("0", False), ("maybe", False), ("", False)],
)
def test_debug_switch_values(
    billing_app, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
) -> None:
    monkeypatch.setenv("FLASK_DEBUG", raw)
    assert billing_app.debug_from_env() is expected


def test_entry_point_exposes_configured_app(billing_app) -> None:
    assert "/api/auth/login" in {rule.rule for rule in billing_app.app.url_map.iter_rules()}
