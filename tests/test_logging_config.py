"""Tests for the structured logging helpers."""

from __future__ import annotations

import json
import logging
import uuid

import pytest
import structlog

from multisig_escrow.logging_config import (
    _render_vault_values,
    bind_action_context,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _clean_context():
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestRenderVaultValues:
    def test_uuid_and_sets(self) -> None:
        vault_id = uuid.uuid4()
        event = _render_vault_values(
            None,
            "info",
            {"event": "request.approved", "vault_id": vault_id, "approvers": frozenset({"b", "a"})},
        )
        assert event["vault_id"] == str(vault_id)
        assert event["approvers"] == ["a", "b"]
        assert event["event"] == "request.approved"


class TestActionContext:
    def test_binds_action_vault_and_caller(self) -> None:
        vault_id = uuid.uuid4()
        bind_action_context("approve", vault_id, "bob.near")
        assert structlog.contextvars.get_contextvars() == {
            "action": "approve",
            "vault_id": str(vault_id),
            "caller": "bob.near",
        }

    def test_omits_unknown_fields(self) -> None:
        bind_action_context("initialize", caller="alice.near")
        assert structlog.contextvars.get_contextvars() == {
            "action": "initialize",
            "caller": "alice.near",
        }

    def test_json_lines_carry_context(self, capsys) -> None:
        setup_logging(log_level="INFO", json_logs=True)
        vault_id = uuid.uuid4()
        bind_action_context("propose", vault_id, "alice.near")

        get_logger("multisig_escrow.test").info(
            "request.proposed", approvers=frozenset({"alice.near"})
        )

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "request.proposed"
        assert record["action"] == "propose"
        assert record["vault_id"] == str(vault_id)
        assert record["approvers"] == ["alice.near"]
        assert record["level"] == "info"

    def test_quiets_sql_echo(self) -> None:
        setup_logging(log_level="DEBUG")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
