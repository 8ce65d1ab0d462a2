"""Tests for PokerDBSettings."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from pokerdb import PokerDBSettings


class TestDefaults:

    def test_defaults(self, monkeypatch):
        for var in ("POKERDB_DATA_DIR", "POKERDB_MAX_SETTLEMENT_ATTEMPTS",
                    "POKERDB_LOG_LEVEL", "POKERDB_LOG_DIR"):
            monkeypatch.delenv(var, raising=False)
        settings = PokerDBSettings()
        assert settings.data_dir == Path.home() / ".config" / "pokerdb"
        assert settings.max_settlement_attempts == 10
        assert settings.log_level == "WARNING"
        assert settings.log_dir is None


class TestEnvironment:

    def test_reads_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("POKERDB_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("POKERDB_MAX_SETTLEMENT_ATTEMPTS", "4")
        monkeypatch.setenv("POKERDB_LOG_LEVEL", "debug")
        settings = PokerDBSettings()
        assert settings.data_dir == tmp_path
        assert settings.max_settlement_attempts == 4
        assert settings.log_level == "DEBUG"
        assert settings.log_level_number == logging.DEBUG

    def test_explicit_arguments_win(self, monkeypatch, tmp_path):
        monkeypatch.setenv("POKERDB_MAX_SETTLEMENT_ATTEMPTS", "4")
        assert PokerDBSettings(max_settlement_attempts=2).max_settlement_attempts == 2


class TestValidation:

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            PokerDBSettings(max_settlement_attempts=0)

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            PokerDBSettings(log_level="chatty")
