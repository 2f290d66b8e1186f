"""
Orchestrator configuration for Cipherbid.

Defines the inactivity policy and operational paths. Values come from
defaults, a JSON file, or CIPHERBID_* environment variables (optionally
loaded from a .env file).
"""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Reference inactivity policy: an auction is considered ended once no
# leader change has happened for this many seconds.
INACTIVITY_WINDOW = 600

ENV_PREFIX = "CIPHERBID_"


class AuctionConfig(BaseModel):
    """Process-wide configuration parameters"""

    # Timeout policy (applies to every auction, never per auction)
    inactivity_window: int = Field(default=INACTIVITY_WINDOW, gt=0)

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    db_name: str = "cipherbid.db"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    def ensure_dirs(self) -> None:
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True, parents=True)


def _from_environment() -> dict:
    values = {}
    for name in AuctionConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw
    return values


def load_config(config_path: Optional[str] = None) -> AuctionConfig:
    """
    Load configuration from file or environment.

    A path ending in .json is read as a JSON object of field values. Any
    other path is treated as a dotenv file whose CIPHERBID_* entries are
    loaded into the environment. Without a path, a .env in the working
    directory is picked up if present.

    Args:
        config_path: Optional path to config file

    Returns:
        AuctionConfig instance

    Raises:
        pydantic.ValidationError: If a value fails validation
    """
    if config_path and config_path.endswith(".json"):
        data = json.loads(Path(config_path).read_text())
        return AuctionConfig.model_validate({**data, **_from_environment()})

    load_dotenv(dotenv_path=config_path, override=False)
    return AuctionConfig.model_validate(_from_environment())


__all__ = ["AuctionConfig", "load_config", "INACTIVITY_WINDOW", "ENV_PREFIX"]
