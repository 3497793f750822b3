"""CLI logging configuration with file output.

``configure_cli_logging`` sets up both console and file logging for a CLI
command. Log files live under ``~/.local/share/pipe-status/logs/``, one per
command, so the client and the server commands (which may run on the same
machine for a local check) keep separate logs::

    client.log
    server.log

The console handler always writes to stderr: the server command's stdout
carries the response frame and must stay clean.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Standard log directory follows XDG convention
LOG_DIR = Path.home() / ".local" / "share" / "pipe-status" / "logs"

_CONSOLE_HANDLER_NAME = "pipe-status-console"


def get_log_dir() -> Path:
    """Return the CLI log directory, creating it if needed."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


def get_log_file(command: str) -> Path:
    return get_log_dir() / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    console_level: int | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
) -> Path:
    """Configure logging for a CLI command with file output.

    Sets up:
    - File handler: DEBUG-level rotating log at
      ``~/.local/share/pipe-status/logs/<command>.log``
    - Console handler on stderr: WARNING (or INFO if verbose)

    Args:
        command: CLI command name ("client" or "server")
        verbose: If True, set console to INFO level
        console_level: Override console level (takes precedence over verbose)
        file_level: File log level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated backups to keep

    Returns:
        Path to the log file
    """
    log_file = get_log_file(command)
    root_logger = logging.getLogger("pipe_status")

    # Remove existing handlers to avoid duplicates on repeated calls
    for handler in root_logger.handlers[:]:
        if isinstance(handler, RotatingFileHandler) or (
            handler.get_name() == _CONSOLE_HANDLER_NAME
        ):
            root_logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)

    if console_level is None:
        console_level = logging.INFO if verbose else logging.WARNING
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(_CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    # NOTSET (0) means "inherit from parent" which defaults to WARNING,
    # so set the level explicitly to let the file handler see DEBUG events.
    lowest = min(file_level, console_level)
    if root_logger.level == logging.NOTSET or root_logger.level > lowest:
        root_logger.setLevel(lowest)

    return log_file
