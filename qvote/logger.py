"""
qvote Logging System
====================

A unified, thread-safe logging utility for the governance core. This module
integrates with the standard Python `logging` library and the `rich` library
so that governance activity (registrations, proposals, votes, slashes) is
easy to follow in a terminal and safe to persist.

Usage:
    >>> from qvote.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("[GOVERNANCE] Proposal #1 created")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


PROJECT_ROOT = Path(__file__).parent.parent
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "qvote.log"
# Only this logger tree is configured
LOGGER_NAMESPACE = "qvote"


class LogManager:
    """
    Manages logging configuration via the Singleton pattern.

    The logging subsystem is initialized exactly once per process. Console
    output goes through Rich (or a plain stream handler when highlighting
    is disabled); file output goes to a rotating log file.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        # Double-checked locking for thread-safe singleton initialization
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._initialized = True

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates a logging format string.

        Every ``(name)x`` specifier must be preceded by ``%`` and the format
        must render a dummy record without leaving specifiers behind.

        Returns:
            str: The validated format, or the default ``LOG_FORMAT`` on failure.
        """
        specifier = r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]"
        try:
            if not log_format:
                return str(LOG_FORMAT.default())
            log_format = str(log_format)

            for match in re.finditer(specifier, log_format):
                if match.start() == 0 or log_format[match.start() - 1] != "%":
                    raise ValueError("Malformed format specifier.")

            record = logging.LogRecord(
                name="check", level=logging.INFO, pathname="", lineno=0,
                msg="check", args=(), exc_info=None,
            )
            rendered = logging.Formatter(fmt=log_format).format(record)
            if re.search(specifier, rendered):
                raise ValueError("Format specifiers not properly processed.")
            return log_format
        except (ValueError, KeyError, TypeError) as e:
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - qvote.logger - "
                f"Invalid log format ({e}). Using default.",
                file=sys.stderr,
            )
            return str(LOG_FORMAT.default())

    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Validates a strftime date format; falls back to the default."""
        if not date_format:
            return str(LOG_DATE_FORMAT.default())
        date_format = str(date_format)

        date_format_pattern = re.compile(
            r"^(?=.*%(?!%)(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z]))"
            r"(?:%%|%(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z])|[0-9 \t:\-\/\.,TZ+])+$"
        )
        if not date_format_pattern.match(date_format):
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - qvote.logger - "
                f"Invalid date format. Using default.",
                file=sys.stderr,
            )
            return str(LOG_DATE_FORMAT.default())
        return date_format

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
        force: bool = False,
    ) -> None:
        """
        Configures the ``qvote`` logger with console and file handlers.

        Records from the governance core stop at this logger and do not
        reach the host's root handlers.

        Args:
            log_level: Logging level name. Defaults to ``LOG_LEVEL``.
            log_file: Path of the rotating log file. Defaults to ``logs/qvote.log``.
            console_output: Enable console logging.
            file_output: Enable rotating file logging. Defaults to ``LOG_FILE_OUTPUT``.
            force: Reconfigure even if already configured (used by ``QVoteConfig``).
        """
        with self._lock:
            if self._configured and not force:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            package_logger = logging.getLogger(LOGGER_NAMESPACE)
            package_logger.setLevel(numeric_level)
            package_logger.propagate = False
            for existing in list(package_logger.handlers):
                package_logger.removeHandler(existing)
                existing.close()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            # UTC keeps timestamps comparable across hosts
            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    theme = Theme(
                        {
                            "qvote.arrow":          "bold yellow",
                            "qvote.account":        "cyan",
                            "qvote.error_code":     "bold red",
                            "qvote.level_critical": "bold red reverse",
                            "qvote.level_debug":    "bold dim",
                            "qvote.level_error":    "bold red",
                            "qvote.level_info":     "bold green",
                            "qvote.level_warning":  "bold yellow",
                            "qvote.logger_name":    "magenta",
                            "qvote.proposal":       "bold white",
                            "qvote.tag":            "bold magenta",
                            "qvote.timestamp":      "bold cyan",
                            "qvote.weight":         "green",
                        }
                    )
                    handler: logging.Handler = RichHandler(
                        console=Console(theme=theme, highlight=False),
                        highlighter=GovernanceLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                else:
                    handler = logging.StreamHandler(sys.stdout)
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                package_logger.addHandler(handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                log_file_path = Path(log_file) if log_file else LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        """Returns a standard logger, configuring the subsystem on first use."""
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escape sequences and non-printable control
    characters, so account ids or text hashes supplied by callers cannot
    forge log lines or manipulate the terminal (CWE-117).
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) except tab and newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
    _carriage_return_re = re.compile(r"\r")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        text = cls._carriage_return_re.sub("", text)
        text = cls._control_chars_re.sub("", text)
        return text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class GovernanceLogHighlighter(RegexHighlighter):
    """Rich highlighter for governance log lines."""

    base_style = "qvote."
    highlights = [
        r"(?P<arrow>(->)|(→))",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<proposal>#\d+)",
        r"(?P<account>\bvoter=\S+)",
        r"(?P<weight>\bweight=\d+)",
        r"(?P<error_code>\bcode=\w+)",
        r"(?P<tag>\[.*?\])",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.

    Args:
        name: The name of the module requesting the logger.

    Returns:
        logging.Logger: The configured logger instance.
    """
    return _manager.get_logger(name)


def configure_logging(**kwargs) -> None:
    """Reconfigures the logging subsystem (see ``LogManager.configure``)."""
    _manager.configure(force=True, **kwargs)
