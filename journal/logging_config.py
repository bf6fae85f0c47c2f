"""
Logging setup for the standup CLI.

Everything goes to a per-user log file; the console only sees what the
chosen verbosity lets through, and always on stderr so command output can
be piped.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_FILE_ENV = "STANDUP_LOG_FILE"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VERBOSE_CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def get_default_log_file() -> Path:
    """
    Where the log file lives unless STANDUP_LOG_FILE says otherwise.

    Returns:
        Path: one of
            - Linux: ~/.local/state/standup-cli/standup.log
            - macOS: ~/Library/Logs/StandupCLI/standup.log
            - Windows: %LOCALAPPDATA%\\StandupCLI\\standup.log
    """
    override = os.environ.get(LOG_FILE_ENV)
    if override:
        return Path(os.path.expanduser(override))

    if sys.platform == "darwin":
        log_dir = Path.home() / "Library" / "Logs" / "StandupCLI"
    elif sys.platform == "win32":
        log_dir = Path.home() / "AppData" / "Local" / "StandupCLI"
    else:
        log_dir = Path.home() / ".local" / "state" / "standup-cli"

    return log_dir / "standup.log"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console_level: Optional[int] = logging.WARNING,
    console_format: str = CONSOLE_FORMAT,
) -> logging.Logger:
    """
    Configure the root logger with a file handler and an optional stderr handler.

    Args:
        level: Level for the root logger and the file handler
        log_file: Log file path. If None, uses get_default_log_file().
        console_level: Minimum level shown on stderr, or None for no console output
        console_format: Format string for console records

    Returns:
        logging.Logger: Configured root logger
    """
    root = logging.getLogger()
    root.setLevel(min(level, console_level) if console_level is not None else level)

    # repeated calls replace rather than stack handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if log_file is None:
        log_file = get_default_log_file()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not set up file logging at {log_file}: {e}", file=sys.stderr)

    if console_level is not None:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter(console_format, datefmt="%H:%M:%S"))
        root.addHandler(console_handler)

    return root


def setup_default_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Logging for the CLI entry point.

    verbose turns on DEBUG everywhere, including the per-repository git
    diagnostics; otherwise the console shows warnings only.
    """
    if verbose:
        return setup_logging(logging.DEBUG, log_file, console_level=logging.DEBUG,
                             console_format=VERBOSE_CONSOLE_FORMAT)
    return setup_logging(logging.INFO, log_file, console_level=logging.WARNING)
