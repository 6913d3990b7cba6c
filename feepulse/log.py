"""Logging setup: file log under the data directory plus console output"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_DATA_DIR = Path.home() / '.feepulse'
LOGGER_NAME = 'feepulse'


def setup_logging(log_dir: Optional[Path] = None, level: str = 'INFO') -> logging.Logger:
    """Setup the application logger with a file and a console handler"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Reconfiguring replaces earlier handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_dir = Path(log_dir) if log_dir else DEFAULT_DATA_DIR
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / 'feepulse.log', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not create log file in {log_dir}: {e}")

    return logger
