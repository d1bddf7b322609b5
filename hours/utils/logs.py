"""
Logging setup for hours.

The interactive UI owns the terminal, so log records only ever go to a file.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_file: Optional[Path], debug: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        log_file: File to append log records to; logging is disabled when None
        debug: Whether to log at DEBUG instead of WARNING level
    """
    if log_file is None:
        logging.basicConfig(handlers=[logging.NullHandler()], force=True)
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        handlers=[handler],
        force=True,
    )
    logging.getLogger(__name__).debug("Logging to %s", log_file)
