"""
qvote Unified Configuration

Loads every section of qvote.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    GovernanceConfig,
    LoggingConfig,
    QVoteConfig,
    load_config,
)

__all__ = [
    "GovernanceConfig",
    "LoggingConfig",
    "QVoteConfig",
    "load_config",
]
