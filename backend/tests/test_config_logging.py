"""Tests for settings and logging setup."""

import json
import logging
import sys
from decimal import Decimal

import pytest
from pydantic import ValidationError

from inventory_engine.core.config import Settings, get_settings
from inventory_engine.core.logging import HUMAN_FORMAT, JSONFormatter, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "DEBUG", "LOG_LEVEL", "DEFAULT_POUR_SIZE_OZ"):
            monkeypatch.delenv(name, raising=False)
        config = Settings(_env_file=None)
        assert config.debug is False
        assert config.log_level == "INFO"
        assert config.explosion_cache_max_entries == 1000
        assert config.default_pour_size_oz == Decimal("1.5")
        assert config.deduction_workers == 2
        assert config.dispatcher_max_history == 1000

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_POUR_SIZE_OZ", "1.25")
        monkeypatch.setenv("EXPLOSION_CACHE_MAX_ENTRIES", "50")
        config = Settings(_env_file=None)
        assert config.default_pour_size_oz == Decimal("1.25")
        assert config.explosion_cache_max_entries == 50

    @pytest.mark.parametrize("field, value", [
        ("explosion_cache_max_entries", 0),
        ("deduction_workers", -1),
        ("dispatcher_max_history", 0),
        ("default_pour_size_oz", Decimal("0")),
        ("log_level", "VERBOSE"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestLogging:
    def test_json_in_production(self, restore_root_logger):
        handler = configure_logging(Settings(_env_file=None, debug=False, log_level="WARNING"))

        assert restore_root_logger.level == logging.WARNING
        assert restore_root_logger.handlers == [handler]
        assert isinstance(handler.formatter, JSONFormatter)

    def test_human_readable_in_debug(self, restore_root_logger):
        handler = configure_logging(Settings(_env_file=None, debug=True, log_level="DEBUG"))

        assert restore_root_logger.level == logging.DEBUG
        assert not isinstance(handler.formatter, JSONFormatter)
        assert handler.formatter._fmt == HUMAN_FORMAT

    def test_json_formatter(self):
        record = logging.LogRecord(
            name="inventory_engine.services.unit_conversion", level=logging.WARNING,
            pathname=__file__, lineno=42, msg="degraded_accuracy: %s", args=("cups -> kg",),
            exc_info=None,
        )
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "inventory_engine.services.unit_conversion"
        assert payload["msg"] == "degraded_accuracy: cups -> kg"
        assert payload["line"] == 42
        assert "exc" not in payload

    def test_json_formatter_includes_exception(self):
        try:
            raise RuntimeError("commit failed")
        except RuntimeError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname=__file__, lineno=1,
                msg="deduction failed", args=(), exc_info=sys.exc_info(),
            )
        payload = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: commit failed" in payload["exc"]
