"""
HopeSwap Logging

Console logging through `rich`, with an optional rotating log file. Logging is
configured once per process: by `deploy_exchange` from the [logging] section,
or with the `.env` defaults on the first `get_logger` call.

Usage:
    >>> from hopeswap.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Pair created")
"""

import logging
import logging.handlers
import re
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


LOG_FILE_PATH = Path(__file__).parent.parent / "logs" / "hopeswap.log"

THEME = Theme(
    {
        "hopeswap.address":       "cyan",
        "hopeswap.event":         "bold magenta",
        "hopeswap.level_error":   "bold red",
        "hopeswap.level_warning": "bold yellow",
        "hopeswap.revert":        "bold red",
    }
)


class LogManager:
    """Process-wide logging setup. A singleton; only the first configure() applies."""

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
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Attach the console handler, and the file handler when enabled.

        Args:
            log_level: Logging level name. Defaults to LOG_LEVEL.
            log_file: Log file path. Defaults to `logs/hopeswap.log`.
            file_output: Enable the rotating file. Defaults to LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            numeric_level = getattr(logging, (log_level or str(LOG_LEVEL)).upper(), logging.INFO)
            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)

            # UTC for consistency across hosts
            formatter = TerminalSafeFormatter(
                fmt=str(LOG_FORMAT), datefmt=str(LOG_DATE_FORMAT) + " UTC"
            )
            formatter.converter = time.gmtime

            if LOG_CONSOLE_HIGHLIGHTING:
                console_handler = RichHandler(
                    console=Console(theme=THEME, highlight=False, stderr=True),
                    highlighter=HopeSwapLogHighlighter(),
                    keywords=[],
                    show_path=False,
                    show_time=False,
                    show_level=False,
                    markup=False,
                )
            else:
                console_handler = logging.StreamHandler()
            console_handler.setLevel(numeric_level)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

            self._configured = True

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


class TerminalSafeFormatter(logging.Formatter):
    """
    Strips ANSI escapes and control characters. Token names and symbols are
    caller-supplied and end up in log lines.
    """

    _unsafe_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
        r"|[\x00-\x08\x0B-\x1F\x7F]"  # keeps Tab and Newline
    )

    def format(self, record: logging.LogRecord) -> str:
        return self._unsafe_re.sub("", super().format(record))


class HopeSwapLogHighlighter(RegexHighlighter):
    """Rich highlighter for addresses, event names and reverts."""

    base_style = "hopeswap."
    highlights = [
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<event>\b(PairCreated|Mint|Burn|Swap|Sync|Transfer|Approval|TokenApproval)\b)",
        r"(?P<level_error>\b(ERROR|CRITICAL)\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<revert>\b[Rr]everted\b)",
    ]


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; configures logging with the defaults if nothing has yet."""
    return LogManager().get_logger(name)
