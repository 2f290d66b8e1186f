"""
Tests for logging configuration.
"""

import logging

import pytest

from cipherbid.utils.logger import HexAbbreviationFilter, get_logger, setup_logging


HANDLE_HEX = "0x" + bytes(range(32)).hex()
ADDRESS = "0x" + "a1" * 20


@pytest.fixture
def restore_logging():
    yield
    setup_logging(force=True)


def make_record(msg, *args):
    return logging.LogRecord("cipherbid.test", logging.INFO, __file__, 1, msg, args, None)


class TestHexAbbreviation:
    """Tests for shortening handles in log output."""

    def test_handle_shortened(self):
        record = make_record(f"Granted on {HANDLE_HEX}")
        assert HexAbbreviationFilter().filter(record) is True
        assert record.getMessage() == "Granted on 0x00010203..1e1f"

    def test_address_kept(self):
        record = make_record(f"Granted {ADDRESS}")
        HexAbbreviationFilter().filter(record)
        assert record.getMessage() == f"Granted {ADDRESS}"

    def test_formatting_args_rendered_first(self):
        record = make_record("%s imported %s", ADDRESS, HANDLE_HEX)
        HexAbbreviationFilter().filter(record)
        assert record.getMessage() == f"{ADDRESS} imported 0x00010203..1e1f"


class TestSetup:
    """Tests for reconfiguring after import-time defaults."""

    def test_setup_without_force_keeps_existing(self, restore_logging):
        setup_logging(level=logging.DEBUG, force=True)
        setup_logging(level=logging.WARNING)
        assert logging.getLogger("cipherbid").level == logging.DEBUG

    def test_forced_setup_writes_abbreviated_file(self, tmp_path, restore_logging):
        setup_logging(level=logging.DEBUG, log_dir=str(tmp_path), log_to_file=True, force=True)
        get_logger("engine").debug(f"Stored ciphertext {HANDLE_HEX}")
        for handler in logging.getLogger("cipherbid").handlers:
            handler.flush()

        content = (tmp_path / "cipherbid.log").read_text()
        assert "Stored ciphertext 0x00010203..1e1f" in content
        assert HANDLE_HEX not in content
