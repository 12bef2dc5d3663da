"""Tests for JSON logging configuration."""

import json
import logging

import pytest

from tenant_operations.lib.logging_config import LOGGER, CustomJsonFormatter, _resolve_level


class TestCustomJsonFormatter:
    """Tests for CustomJsonFormatter field filtering."""

    def _format(self, **extra) -> dict:
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
        record = logging.LogRecord("tenant_operations", logging.INFO, __file__, 10, "hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return json.loads(formatter.format(record))

    def test_keeps_reconcile_fields(self) -> None:
        payload = self._format(tenant="t1", phase="Secret")

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["tenant"] == "t1"
        assert payload["phase"] == "Secret"
        assert "timestamp" in payload

    def test_drops_other_fields(self) -> None:
        payload = self._format(request_id="abc")

        assert "request_id" not in payload
        assert "levelname" not in payload


class TestLogger:
    """Tests for the singleton LOGGER."""

    def test_single_handler_no_propagation(self) -> None:
        assert LOGGER.name == "tenant_operations"
        assert len(LOGGER.handlers) == 1
        assert not LOGGER.propagate


class TestResolveLevel:
    """Tests for LOG_LEVEL resolution."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            (None, logging.INFO),
            ("debug", logging.DEBUG),
            ("WARNING", logging.WARNING),
            ("verbose", logging.INFO),
            ("", logging.INFO),
        ],
    )
    def test_resolve_level(self, name, expected) -> None:
        assert _resolve_level(name) == expected
