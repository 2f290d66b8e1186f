"""
Tests for configuration loading and boundary validation.
"""

import json

import pytest
from pydantic import ValidationError

from cipherbid.core.config import INACTIVITY_WINDOW, AuctionConfig, load_config
from cipherbid.utils.validation import (
    UINT32_MAX,
    validate_bid_value,
    validate_external_handle,
    validate_proof,
    validate_start_price,
)


ENV_NAMES = [
    "CIPHERBID_INACTIVITY_WINDOW",
    "CIPHERBID_LOG_LEVEL",
    "CIPHERBID_DB_NAME",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Strip CIPHERBID_* variables and undo anything a dotenv load sets."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# AuctionConfig Tests
# =============================================================================


class TestAuctionConfig:
    """Tests for the configuration model."""

    def test_defaults(self):
        config = AuctionConfig()
        assert config.inactivity_window == INACTIVITY_WINDOW
        assert config.log_level == "INFO"
        assert config.db_path == config.data_dir / "cipherbid.db"

    @pytest.mark.parametrize("window", [0, -1])
    def test_window_must_be_positive(self, window):
        with pytest.raises(ValidationError):
            AuctionConfig(inactivity_window=window)

    def test_log_level_normalized(self):
        assert AuctionConfig(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            AuctionConfig(log_level="chatty")

    def test_ensure_dirs(self, tmp_path):
        config = AuctionConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs", log_to_file=True)
        config.ensure_dirs()
        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "logs").is_dir()


class TestLoadConfig:
    """Tests for load_config sources."""

    def test_environment(self, clean_env):
        clean_env.setenv("CIPHERBID_INACTIVITY_WINDOW", "120")
        clean_env.setenv("CIPHERBID_LOG_LEVEL", "warning")
        config = load_config()
        assert config.inactivity_window == 120
        assert config.log_level == "WARNING"

    def test_json_file(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"inactivity_window": 30, "db_name": "test.db"}))
        config = load_config(str(path))
        assert config.inactivity_window == 30
        assert config.db_name == "test.db"

    def test_environment_overrides_json(self, clean_env, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"inactivity_window": 30}))
        clean_env.setenv("CIPHERBID_INACTIVITY_WINDOW", "45")
        assert load_config(str(path)).inactivity_window == 45

    def test_dotenv_file(self, clean_env, tmp_path):
        path = tmp_path / "auction.env"
        path.write_text("CIPHERBID_INACTIVITY_WINDOW=90\nCIPHERBID_DB_NAME=env.db\n")
        config = load_config(str(path))
        assert config.inactivity_window == 90
        assert config.db_name == "env.db"

    def test_invalid_value(self, clean_env):
        clean_env.setenv("CIPHERBID_INACTIVITY_WINDOW", "0")
        with pytest.raises(ValidationError):
            load_config()


# =============================================================================
# Validation Tests
# =============================================================================


class TestValidation:
    """Tests for boundary validators."""

    @pytest.mark.parametrize("value,ok", [
        (0, True),
        (UINT32_MAX, True),
        (-1, False),
        (UINT32_MAX + 1, False),
        (False, False),
        ("5", False),
    ])
    def test_start_price(self, value, ok):
        valid, err = validate_start_price(value)
        assert valid is ok
        assert (err == "") is ok

    def test_bid_value(self):
        assert validate_bid_value(150)[0]
        assert not validate_bid_value(2**40)[0]

    def test_external_handle(self):
        assert validate_external_handle(b"\x00" * 32)[0]
        assert not validate_external_handle(b"\x00" * 33)[0]
        assert not validate_external_handle("00" * 32)[0]

    def test_proof(self):
        assert validate_proof(b"")[0]
        assert validate_proof(bytearray(100))[0]
        assert not validate_proof(b"\x00" * 4097)[0]
        assert not validate_proof(None)[0]
