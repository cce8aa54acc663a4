"""
Tests for the application shell: health check, logging setup, error
translation and the jobs command line.
"""

import json
import logging

import pytest

from growthfund.jobs import build_parser
from growthfund.logging import JsonFormatter, setup_logging


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestLogging:

    @pytest.fixture
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_formatter(self):
        record = logging.LogRecord(
            "growthfund.test", logging.WARNING, __file__, 1, "balance %d", (42,), None
        )
        data = json.loads(JsonFormatter().format(record))
        assert data["level"] == "WARNING"
        assert data["logger"] == "growthfund.test"
        assert data["message"] == "balance 42"
        assert "timestamp" in data

    def test_json_formatter_includes_extra_fields(self):
        record = logging.getLogger("growthfund.test").makeRecord(
            "growthfund.test", logging.INFO, __file__, 1, "credited", (), None,
            extra={"account_id": "acc-1", "amount_cents": 2500},
        )
        data = json.loads(JsonFormatter().format(record))
        assert data["account_id"] == "acc-1"
        assert data["amount_cents"] == 2500
        assert "lineno" not in data
        assert "args" not in data

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging("chatty", "standard")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_installs_single_handler(self, restore_root_logger):
        setup_logging("debug", "json")
        setup_logging("debug", "json")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING


class TestErrorTranslation:

    async def test_domain_errors_carry_error_type(self, authenticated_client):
        response = await authenticated_client.post(
            "/transactions/initiate",
            json={"amount_cents": 1, "type": "deposit"},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "invalid_amount"
        assert set(body) == {"detail", "error_type", "minimum_cents", "maximum_cents"}


class TestJobsCli:

    @pytest.mark.parametrize("command", ["accrue-interest", "purge-codes"])
    def test_commands_parse(self, command):
        assert build_parser().parse_args([command]).command == command

    def test_promote_admin_needs_email(self):
        args = build_parser().parse_args(["promote-admin", "ops@example.com"])
        assert args.email == "ops@example.com"
        with pytest.raises(SystemExit):
            build_parser().parse_args(["promote-admin"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
