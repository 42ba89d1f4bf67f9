"""Warning/error log file for operators.

Ingestion hook failures and rejected completion reports are logged at
WARNING. When enabled, this handler copies those records to a rotating file
so they can be reviewed without trawling the full application log.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from upqueue.config import UploadConfig


_error_file_handler: RotatingFileHandler | None = None


def setup_error_log_file(config: "UploadConfig") -> RotatingFileHandler | None:
    """Attach a rotating warning/error file handler to the ``upqueue`` logger.

    Args:
        config: Application configuration with error log settings.

    Returns:
        The configured RotatingFileHandler, or None if disabled or the file
        cannot be created.
    """
    global _error_file_handler

    if not config.error_log_file_enabled:
        return None

    log_level = getattr(logging, config.error_log_level.upper(), logging.WARNING)

    log_file = Path(config.error_log_file_path).expanduser()
    if not log_file.is_absolute():
        from upqueue.config import _find_repo_root

        log_file = _find_repo_root(start=Path(__file__)) / log_file
    log_file = log_file.resolve()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=config.error_log_max_bytes,
            backupCount=config.error_log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    package_logger = logging.getLogger("upqueue")
    if _error_file_handler is not None:
        package_logger.removeHandler(_error_file_handler)
        _error_file_handler.close()
    package_logger.addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)",
        log_file,
        config.error_log_level.upper(),
    )
    return handler


def get_error_log_handler() -> RotatingFileHandler | None:
    """Return the current error log file handler, if configured."""
    return _error_file_handler
