"""
Tests for environment-based configuration
"""

import os
from unittest.mock import patch

from borrow_ledger import config as config_module
from borrow_ledger.config import LedgerConfig, get_config, reload_config


class TestLedgerConfig:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = LedgerConfig(_env_file=None)

        assert config.storage_type == "memory"
        assert config.storage_key == "borrowed_money"
        assert config.log_format == "json"
        assert config.enable_events is True

    def test_environment_overrides(self):
        env_vars = {
            "BORROW_LEDGER_STORAGE_TYPE": "sqlite",
            "BORROW_LEDGER_STORAGE_PATH": "/tmp/ledger.db",
            "BORROW_LEDGER_ENABLE_EVENTS": "false",
        }
        with patch.dict(os.environ, env_vars):
            config = LedgerConfig(_env_file=None)

        assert config.storage_type == "sqlite"
        assert config.storage_path == "/tmp/ledger.db"
        assert config.enable_events is False

    def test_reload_config(self):
        original = get_config()
        try:
            with patch.dict(os.environ, {"BORROW_LEDGER_LOG_LEVEL": "DEBUG"}):
                reloaded = reload_config()
            assert reloaded.log_level == "DEBUG"
            assert get_config() is reloaded
        finally:
            config_module.config = original

    def test_settings_model_config(self):
        assert LedgerConfig.model_config["env_prefix"] == "BORROW_LEDGER_"
        assert LedgerConfig.model_config["case_sensitive"] is False
