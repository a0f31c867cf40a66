"""
Logging setup using Loguru.
Configures a rotating file sink and an optional stderr sink.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir


def get_log_file_path() -> Path:
    """Get the path to the default log file."""
    return get_data_dir() / "grouptherapy.log"


def setup_loguru(config: Optional[LoggingConfig] = None) -> Path:
    """
    Configure loguru sinks from logging configuration.

    Args:
        config: Logging configuration (defaults used when None)

    Returns:
        Path of the log file in use
    """
    config = config or LoggingConfig()
    log_file = Path(config.log_file) if config.log_file else get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{config.max_file_size_mb} MB",
        retention=config.backup_count,
        level=config.level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if config.console_output:
        logger.add(
            sys.stderr,
            level=config.level,
            format="<level>{level: <8}</level> | {message}",
        )

    logger.info(f"Loguru initialized: {log_file} (level={config.level})")
    return log_file
