"""
QRVault Logging System
======================

Process-wide logging setup: a ``rich`` console handler on stderr and an
optional rotating log file, configured once and reconfigurable by the CLI.

Usage:
    >>> from qrvault.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Registry initialized")
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
LOG_FILE_PATH = PROJECT_ROOT / "logs" / "qrvault.log"

_THEME = Theme(
    {
        "qrvault.code":      "bold red",
        "qrvault.hex":       "cyan",
        "qrvault.principal": "magenta",
        "qrvault.warning":   "bold yellow",
        "qrvault.error":     "bold red",
        "qrvault.timestamp": "bold cyan",
    }
)


class RegistryLogHighlighter(RegexHighlighter):
    """Highlights error codes, hex digests and principals in registry logs."""

    base_style = "qrvault."
    highlights = [
        r"(?P<code>\b(?:ok|err) u\d+\b)",
        r"(?P<hex>\b[0-9a-f]{16,}\b)",
        r"(?P<principal>'[\w.-]+')",
        r"(?P<warning>\bWARNING\b)",
        r"(?P<error>\b(?:ERROR|CRITICAL)\b)",
        r"(?P<timestamp>^\S+ UTC)",
    ]


class EscapingFormatter(logging.Formatter):
    """
    Renders control characters as ``\\xNN``.

    Principal names are caller-supplied, so a name carrying a newline or an
    escape sequence must not be able to fake a log line or drive the terminal.
    """

    # Tab is the only control character kept
    _unsafe = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

    def formatMessage(self, record: logging.LogRecord) -> str:
        # Tracebacks are appended after this and keep their line breaks
        return self._unsafe.sub(lambda m: f"\\x{ord(m.group()):02x}", super().formatMessage(record))


class LogManager:
    """Configures the root logger exactly once per process (unless forced)."""

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._configured = False
        return cls._instance

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
        force: bool = False,
    ) -> None:
        """
        Install the console and file handlers on the root logger.

        Args:
            log_level: Level name; defaults to ``LOG_LEVEL`` from the environment
            log_file: Rotating log path; defaults to ``logs/qrvault.log``
            console_output: Attach the stderr handler
            file_output: Attach the file handler; defaults to ``LOG_FILE_OUTPUT``
            force: Reconfigure even if already configured
        """
        with self._lock:
            if self._configured and not force:
                return

            numeric_level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)
            root_logger.handlers.clear()

            formatter = EscapingFormatter(fmt=str(LOG_FORMAT), datefmt=f"{LOG_DATE_FORMAT} UTC")
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    handlers.append(RichHandler(
                        console=Console(theme=_THEME, highlight=False, stderr=True),
                        highlighter=RegistryLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    ))
                else:
                    handlers.append(logging.StreamHandler(sys.stderr))

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                path = log_file or LOG_FILE_PATH
                path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(logging.handlers.RotatingFileHandler(
                    filename=str(path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                ))

            for handler in handlers:
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                root_logger.addHandler(handler)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    @property
    def is_configured(self) -> bool:
        return self._configured


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures logging on first use."""
    return _manager.get_logger(name)


def configure_logging(**kwargs) -> None:
    """Reconfigure logging, e.g. after a config file changed the level."""
    _manager.configure(force=True, **kwargs)


_manager.configure()
