"""
Logger setup for the CLI and the web app.

Modules log through ``from loguru import logger``; this module only decides
where the records go.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | {name} | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{line} | {message}"


def setup_logger(level: str = "INFO", log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for the console sink
        log_dir: Optional directory for a DEBUG-level ``resumematch.log``

    Returns:
        Path to the log file, or None when logging to the console only
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_dir is None:
        return None

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "resumematch.log"
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", encoding="utf-8")
    logger.debug(f"Logging to {log_file}")
    return log_file
