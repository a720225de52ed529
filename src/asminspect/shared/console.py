"""
Run log for a single export.

Every line is timestamped, written to the console and, once a log file is
attached, mirrored to that file. Each run owns a private logger so nothing is
shared through the process-wide logging tree.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import ClassVar, TextIO

from colorama import Fore, Style, just_fix_windows_console

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LINE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class _ColorFormatter(logging.Formatter):
    COLORS: ClassVar[dict[int, str]] = {
        logging.DEBUG: Style.DIM,
        SUCCESS: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self.COLORS.get(record.levelno, "")
        return f"{color}{line}{Style.RESET_ALL}" if color else line


class RunLog:
    """Manages console and file output for one run, respecting level/color flags."""

    def __init__(
        self,
        level: int = logging.INFO,
        no_color: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.level = level
        self.log_path: Path | None = None

        stream = stream if stream is not None else sys.stdout
        self.no_color = no_color or not getattr(stream, "isatty", lambda: False)()
        if not self.no_color:
            just_fix_windows_console()

        # Constructed directly so per-run loggers stay out of the global registry
        self._logger = logging.Logger("asminspect.run")
        self._logger.setLevel(level)
        self._logger.propagate = False

        console = logging.StreamHandler(stream)
        formatter_cls = logging.Formatter if self.no_color else _ColorFormatter
        console.setFormatter(formatter_cls(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT))
        self._logger.addHandler(console)

    def attach_file(self, path: Path) -> None:
        """Mirror every following line into `path` (created or truncated)."""
        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT))
        self._logger.addHandler(handler)
        self.log_path = path

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

    def __enter__(self) -> RunLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def debug(self, msg: str) -> None:
        self._logger.debug(msg)

    def info(self, msg: str) -> None:
        self._logger.info(msg)

    def success(self, msg: str) -> None:
        self._logger.log(SUCCESS, msg)

    def warning(self, msg: str) -> None:
        self._logger.warning(msg)

    def error(self, msg: str) -> None:
        self._logger.error(msg)

    def critical(self, msg: str) -> None:
        self._logger.critical(msg)
