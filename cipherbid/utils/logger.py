"""
Centralized logging configuration for Cipherbid.

Provides colored console logging and an optional log file, with one
child logger per subsystem (registry, bid, acl, timeout, engine, storage).

Ciphertext handles and input proofs are long hex strings; every handler
abbreviates them so log lines stay readable. 20-byte addresses are left
intact.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import colorlog


# Anything longer than an address: handles (32 bytes), proofs, digests
LONG_HEX = re.compile(r"0x([0-9a-fA-F]{8})[0-9a-fA-F]{33,}([0-9a-fA-F]{4})")


class HexAbbreviationFilter(logging.Filter):
    """Shortens long 0x-prefixed hex runs in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        shortened = LONG_HEX.sub(r"0x\1..\2", message)
        if shortened != message:
            record.msg = shortened
            record.args = None
        return True


class CipherbidLogger:
    """Centralized logger for Cipherbid components"""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        force: bool = False,
    ):
        """
        Setup logging configuration.

        Modules call get_logger at import time, which configures defaults.
        Entry points pass force=True to replace them.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_dir: Directory for log files. If None, uses ./logs
            log_to_file: Whether to write logs to file
            force: Reconfigure even if logging is already set up
        """
        if cls._initialized and not force:
            return

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)

        root_logger = logging.getLogger("cipherbid")
        root_logger.setLevel(level)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        hex_filter = HexAbbreviationFilter()

        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.addFilter(hex_filter)
        console_formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

        if log_to_file and cls._log_dir:
            file_handler = logging.FileHandler(cls._log_dir / "cipherbid.log")
            file_handler.setLevel(level)
            file_handler.addFilter(hex_filter)
            file_formatter = logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger for a specific subsystem.

        Args:
            name: Subsystem name (e.g., 'registry', 'bid', 'engine')

        Returns:
            Logger instance
        """
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"cipherbid.{name}")


# Convenience functions
def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific subsystem"""
    return CipherbidLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
    force: bool = False,
):
    """Setup logging configuration"""
    CipherbidLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, force=force)
