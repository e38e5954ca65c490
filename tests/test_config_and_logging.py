# tests/test_config_and_logging.py
from __future__ import annotations

import json
import logging

import pytest

from backoffice.config import Settings
from backoffice.logging_config import JsonFormatter
from backoffice.db import _engine_kwargs
from backoffice.middleware.request_id import _clean_request_id, org_slug_ctx, request_id_ctx


def test_prod_refuses_dev_auth():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="dev", cors_allow_origins=["https://app.example.com"])


def test_prod_refuses_wildcard_cors():
    with pytest.raises(ValueError):
        Settings(app_env="production", auth_mode="header", cors_allow_origins="*")


def test_prod_with_header_auth_is_accepted():
    s = Settings(app_env="prod", auth_mode="header", cors_allow_origins=["https://app.example.com"])
    assert s.auth_mode == "header"


def test_share_percentage_must_be_a_fraction():
    with pytest.raises(ValueError):
        Settings(organization_share_percentage=20)


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("LEASE_OFFER_EXPIRATION_DAYS", "14")
    assert Settings().lease_offer_expiration_days == 14


def test_json_formatter_carries_request_id_and_extras():
    record = logging.LogRecord("backoffice.workflow", logging.INFO, __file__, 1, "workflow transition %s", ("Approve",), None)
    record.org_id = 4
    record.entity_type = "RentalApplication"
    record.to_status = "Approved"

    token = request_id_ctx.set("rid-42")
    try:
        line = JsonFormatter().format(record)
    finally:
        request_id_ctx.reset(token)

    payload = json.loads(line)
    assert payload["message"] == "workflow transition Approve"
    assert payload["request_id"] == "rid-42"
    assert payload["org_id"] == 4
    assert payload["entity_type"] == "RentalApplication"
    assert payload["to_status"] == "Approved"
    assert "user_id" not in payload


def test_json_formatter_tags_lines_with_active_org():
    record = logging.LogRecord("backoffice.workflow", logging.INFO, __file__, 1, "workflow transition", (), None)

    token = org_slug_ctx.set("org-a")
    try:
        payload = json.loads(JsonFormatter().format(record))
    finally:
        org_slug_ctx.reset(token)

    assert payload["org_slug"] == "org-a"


def test_incoming_request_ids_are_trimmed_and_capped():
    assert _clean_request_id("  req-1  ") == "req-1"
    assert len(_clean_request_id("x" * 500)) == 128
    assert len(_clean_request_id("   ")) == 36


def test_sqlite_engine_allows_cross_thread_sessions():
    assert _engine_kwargs("sqlite:///./backoffice.db")["connect_args"] == {"check_same_thread": False}
    assert "connect_args" not in _engine_kwargs("postgresql+psycopg://u:p@db/backoffice")
