"""
Logging setup for Skirmish.

One rotating debug log per data directory records every decision, repair
and command of every character. The console only shows warnings unless
asked for more.

Usage:
    from skirmish.logging_config import setup_logging
    setup_logging(data_root)  # once, before the first session is built

Modules log through `logging.getLogger(__name__)`; everything under the
`skirmish` namespace ends up in <data_root>/debug.log.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime


LOG_FILE_NAME = "debug.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5

ROOT_LOGGER = "skirmish"

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")

_FILE_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-35s | %(funcName)-25s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"

_logging_initialized = False


def setup_logging(
    data_root: Path | str,
    log_level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
) -> Path:
    """
    Attach file and console handlers to the skirmish logger.

    Safe to call again: existing handlers are replaced, so a second call
    only changes levels or the log location.

    Args:
        data_root: Directory that receives debug.log (created if missing)
        log_level: Threshold for the log file
        console_level: Threshold for stderr

    Returns:
        Path to the log file
    """
    global _logging_initialized

    log_dir = Path(data_root)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    if not _logging_initialized:
        logger.info(f"Skirmish session log opened {datetime.now().isoformat()} -> {log_path.absolute()}")
        _logging_initialized = True

    return log_path


# =============================================================================
# Structured Logging Helpers
# =============================================================================


def log_turn(
    logger: logging.Logger,
    controller: str,
    phase: str,
    details: str | None = None,
) -> None:
    """Log turn boundaries."""
    details_str = f" | {details}" if details else ""
    logger.info(f"TURN | {controller} | {phase}{details_str}")


def log_decision(
    logger: logging.Logger,
    character: str,
    command_type: str | None,
    details: str | None = None,
) -> None:
    """Log a candidate command received from the oracle."""
    details_str = f" | {details}" if details else ""
    logger.debug(f"DECISION | {character} | {command_type or 'none'}{details_str}")


def log_repair(
    logger: logging.Logger,
    character: str,
    attempt: int,
    max_attempts: int,
    error_count: int,
) -> None:
    """Log a rejected command on its way to repair."""
    logger.debug(f"REPAIR | {character} | attempt {attempt}/{max_attempts} | {error_count} error(s)")


def log_command(
    logger: logging.Logger,
    character: str,
    command_type: str,
    status: str,
    details: str | None = None,
) -> None:
    """Log command execution."""
    details_str = f" | {details}" if details else ""
    logger.debug(f"COMMAND | {character} | {command_type} | {status}{details_str}")
