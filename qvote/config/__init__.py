"""
qvote Configuration

Loads qvote.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    QVoteConfig,
    GovernanceSectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "QVoteConfig",
    "GovernanceSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
