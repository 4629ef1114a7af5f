"""Logging configuration for the command-line entry point."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


class Colors:
    """ANSI color codes (only used when TTY detected)"""
    RESET = '\033[0m'
    CYAN = '\033[96m'      # DEBUG
    YELLOW = '\033[93m'    # WARNING
    RED = '\033[91m'       # ERROR and above
    BOLD = '\033[1m'
    DIM = '\033[2m'


_LEVEL_COLORS = {
    logging.DEBUG: Colors.CYAN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.RED + Colors.BOLD,
}

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(levelname)s: %(message)s'


def _should_use_colors() -> bool:
    """Check if colored output should be enabled"""
    # Check environment variable first
    force_color = os.getenv('FORCE_COLOR', '').lower()
    if force_color in ('1', 'true', 'yes', 'on'):
        return True
    elif force_color in ('0', 'false', 'no', 'off'):
        return False

    # Auto-detect: use colors if stderr is a TTY
    return sys.stderr.isatty()


class ColorFormatter(logging.Formatter):
    """Console formatter that colours the level name."""

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: Optional[bool] = None):
        super().__init__(fmt)
        self.use_colors = _should_use_colors() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            return f"{color}{message}{Colors.RESET}"
        return message


def setup_logging(log_dir: Path, verbose: bool = False) -> None:
    """Configure the root logger with a file handler and a console handler.

    Args:
        log_dir: Directory receiving sdkvm.log
        verbose: Show DEBUG messages on the console instead of WARNING and above
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Repeated calls (tests, embedding) must not stack handlers
    for handler in list(root_logger.handlers):
        if getattr(handler, "_sdkvm", False):
            root_logger.removeHandler(handler)
            handler.close()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "sdkvm.log", encoding='utf-8')
    except OSError as e:
        file_handler = None
        print(f"warning: file logging disabled: {e}", file=sys.stderr)

    if file_handler is not None:
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        file_handler._sdkvm = True
        root_logger.addHandler(file_handler)

    # Console only shows WARNING and above unless verbose, to keep command output clean
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(ColorFormatter())
    console_handler._sdkvm = True
    root_logger.addHandler(console_handler)
