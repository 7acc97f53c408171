"""
qvote TOML Configuration Loader

Loads the governance limits and logging settings from a TOML file with
environment variable overrides (dataclass + from_dict + from_file).

Environment variable mapping:
    [governance] offchain_data_limit → QVOTE_OFFCHAIN_DATA_LIMIT
    [governance] account_size_limit  → QVOTE_ACCOUNT_SIZE_LIMIT
    [governance] maximum_duration    → QVOTE_MAXIMUM_DURATION
    [governance] minimum_duration    → QVOTE_MINIMUM_DURATION
    [governance] delay_limit         → QVOTE_DELAY_LIMIT
    [logging]    level               → QVOTE_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    PROPOSAL_ACCOUNT_SIZE_LIMIT,
    PROPOSAL_DELAY_LIMIT,
    PROPOSAL_MAXIMUM_DURATION,
    PROPOSAL_MINIMUM_DURATION,
    PROPOSAL_OFFCHAIN_DATA_LIMIT,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from e


@dataclass
class GovernanceConfig:
    """[governance] section."""
    offchain_data_limit: int = PROPOSAL_OFFCHAIN_DATA_LIMIT
    account_size_limit: int = PROPOSAL_ACCOUNT_SIZE_LIMIT
    maximum_duration: int = PROPOSAL_MAXIMUM_DURATION
    minimum_duration: int = PROPOSAL_MINIMUM_DURATION
    delay_limit: int = PROPOSAL_DELAY_LIMIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        return cls(
            offchain_data_limit=data.get("offchain_data_limit", PROPOSAL_OFFCHAIN_DATA_LIMIT),
            account_size_limit=data.get("account_size_limit", PROPOSAL_ACCOUNT_SIZE_LIMIT),
            maximum_duration=data.get("maximum_duration", PROPOSAL_MAXIMUM_DURATION),
            minimum_duration=data.get("minimum_duration", PROPOSAL_MINIMUM_DURATION),
            delay_limit=data.get("delay_limit", PROPOSAL_DELAY_LIMIT),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if (v := _env_int("QVOTE_OFFCHAIN_DATA_LIMIT")) is not None:
            self.offchain_data_limit = v
        if (v := _env_int("QVOTE_ACCOUNT_SIZE_LIMIT")) is not None:
            self.account_size_limit = v
        if (v := _env_int("QVOTE_MAXIMUM_DURATION")) is not None:
            self.maximum_duration = v
        if (v := _env_int("QVOTE_MINIMUM_DURATION")) is not None:
            self.minimum_duration = v
        if (v := _env_int("QVOTE_DELAY_LIMIT")) is not None:
            self.delay_limit = v

    def validate(self) -> None:
        for name in (
            "offchain_data_limit",
            "account_size_limit",
            "maximum_duration",
            "minimum_duration",
            "delay_limit",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"governance.{name} must be a non-negative integer")
        if self.minimum_duration < 1:
            raise ConfigurationError("governance.minimum_duration must be >= 1")
        if self.minimum_duration > self.maximum_duration:
            raise ConfigurationError(
                f"governance.minimum_duration ({self.minimum_duration}) exceeds "
                f"maximum_duration ({self.maximum_duration})"
            )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_path: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_path=data.get("file_path", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QVOTE_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("QVOTE_LOG_FILE"):
            self.file_path = v

    def validate(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")


@dataclass
class QVoteConfig:
    """
    Unified configuration.

    Loads every section of qvote.toml and applies environment variable
    overrides.
    """
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QVoteConfig":
        """Create QVoteConfig from a parsed TOML dict."""
        return cls(
            governance=GovernanceConfig.from_dict(data.get("governance", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "QVoteConfig":
        """
        Load configuration from a TOML file.

        A missing file yields the defaults (with environment overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.governance.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.governance.validate()
        self.logging.validate()
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "governance": {
                "offchain_data_limit": self.governance.offchain_data_limit,
                "account_size_limit": self.governance.account_size_limit,
                "maximum_duration": self.governance.maximum_duration,
                "minimum_duration": self.governance.minimum_duration,
                "delay_limit": self.governance.delay_limit,
            },
            "logging": {
                "level": self.logging.level,
                "file_path": self.logging.file_path,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> QVoteConfig:
    """
    Load and validate configuration.

    Resolution order:
        1. Explicit *path* argument
        2. QVOTE_CONFIG env var
        3. ./qvote.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("QVOTE_CONFIG", "qvote.toml")

    cfg = QVoteConfig.from_file(path)
    cfg.validate()
    return cfg
