"""
qvote TOML Configuration Loader

Loads qvote.toml with environment variable overrides. Defaults come from
``qvote.constants`` (which already merges ``.env``).

Environment variable mapping:
    [governance] voting_period → QVOTE_VOTING_PERIOD
    [logging] level            → QVOTE_LOG_LEVEL
    [logging] console          → QVOTE_LOG_CONSOLE
    [logging] file             → QVOTE_LOG_FILE
    [logging] file_path        → QVOTE_LOG_FILE_PATH
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import (
    LOG_FILE_OUTPUT,
    LOG_LEVEL,
    QVOTE_CONFIG,
    QVOTE_VOTING_PERIOD,
    parse_bool,
)
from ..exceptions import ConfigurationError
from ..logger import LOG_FILE_PATH, configure_logging, get_logger

logger = get_logger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from e


def _env_bool(name: str) -> Optional[bool]:
    v = os.environ.get(name)
    if not v:
        return None
    parsed = parse_bool(v)
    if not isinstance(parsed, bool):
        raise ConfigurationError(f"{name} must be True or False, got {v!r}")
    return parsed


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class GovernanceSectionConfig:
    """[governance] section."""
    voting_period: int = int(QVOTE_VOTING_PERIOD)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceSectionConfig":
        return cls(
            voting_period=data.get("voting_period", int(QVOTE_VOTING_PERIOD)),
        )

    def apply_env(self) -> None:
        if (v := _env_int("QVOTE_VOTING_PERIOD")) is not None:
            self.voting_period = v

    def validate(self) -> None:
        if isinstance(self.voting_period, bool) or not isinstance(self.voting_period, int):
            raise ConfigurationError(
                f"voting_period must be an integer, got {self.voting_period!r}"
            )
        if self.voting_period < 0:
            raise ConfigurationError("voting_period must be >= 0")


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = str(LOG_LEVEL)
    console: bool = True
    file: bool = bool(LOG_FILE_OUTPUT)
    file_path: str = str(LOG_FILE_PATH)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=data.get("level", str(LOG_LEVEL)),
            console=data.get("console", True),
            file=data.get("file", bool(LOG_FILE_OUTPUT)),
            file_path=data.get("file_path", str(LOG_FILE_PATH)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("QVOTE_LOG_LEVEL"):
            self.level = v
        if (v := _env_bool("QVOTE_LOG_CONSOLE")) is not None:
            self.console = v
        if (v := _env_bool("QVOTE_LOG_FILE")) is not None:
            self.file = v
        if v := os.environ.get("QVOTE_LOG_FILE_PATH"):
            self.file_path = v

    def validate(self) -> None:
        if str(self.level).upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")


# -----------------------------------------------------------------------
# Root config
# -----------------------------------------------------------------------

@dataclass
class QVoteConfig:
    """
    Governance core configuration.

    Loads every section of qvote.toml and applies environment variable
    overrides.
    """
    governance: GovernanceSectionConfig = field(default_factory=GovernanceSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QVoteConfig":
        """Create QVoteConfig from a parsed TOML dict."""
        return cls(
            governance=GovernanceSectionConfig.from_dict(data.get("governance", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "QVoteConfig":
        """
        Load configuration from a TOML file. A missing file yields the
        defaults (with env overrides).

        Raises:
            ConfigurationError: the file is not valid TOML
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        logger.debug(f"Loaded configuration from {config_path}")
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        self.governance.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Raises:
            ConfigurationError: on invalid config
        """
        self.governance.validate()
        self.logging.validate()
        return True

    # --- side effects -----------------------------------------------------

    def configure_logging(self) -> None:
        """Reconfigure the logging subsystem from the [logging] section."""
        configure_logging(
            log_level=self.logging.level,
            log_file=Path(self.logging.file_path),
            console_output=self.logging.console,
            file_output=self.logging.file,
        )

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "governance": {
                "voting_period": self.governance.voting_period,
            },
            "logging": {
                "level": self.logging.level,
                "console": self.logging.console,
                "file": self.logging.file,
                "file_path": self.logging.file_path,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> QVoteConfig:
    """
    Load and validate governance configuration.

    Resolution order:
        1. Explicit *path* argument
        2. QVOTE_CONFIG env var
        3. ./qvote.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("QVOTE_CONFIG", str(QVOTE_CONFIG))

    cfg = QVoteConfig.from_file(path)
    cfg.validate()
    return cfg
