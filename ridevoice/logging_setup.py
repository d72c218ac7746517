"""Logging configuration for ridevoice."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# Rotate at 1MB, keep a few old files around
MAX_LOG_BYTES = 1024 * 1024
LOG_BACKUP_COUNT = 3

# Handlers installed by setup_logging, replaced on the next call
_installed_handlers: List[logging.Handler] = []


def setup_logging(level: str, log_file: Optional[Path] = None) -> None:
    """Configure root logging.

    Args:
        level: Logging level name (e.g. "INFO").
        log_file: Optional path for a rotating log file.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    # Console output is reserved for the progress lines; keep stderr quiet
    console_handler.setLevel(max(logging.WARNING, root.level))
    root.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as e:
            print(
                f"Warning: Could not open log file {log_file} ({e}), "
                "logging to stderr only.",
                file=sys.stderr,
            )
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            _installed_handlers.append(file_handler)

    logging.getLogger(__name__).debug(f"Logging configured at level {level}")
