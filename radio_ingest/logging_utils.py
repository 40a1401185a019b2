"""
Logging setup on top of the shared rich console
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .rich_console import console

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(level: str = 'INFO', log_file: Optional[Path] = None,
                      max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
    """Route package logs to the rich console and, optionally, a rotating file"""
    root = logging.getLogger('radio_ingest')
    root.setLevel(level.upper())
    root.handlers.clear()
    root.propagate = False

    rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    rich_handler.setFormatter(logging.Formatter('%(message)s', datefmt='[%X]'))
    root.addHandler(rich_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes,
                                           backupCount=backup_count, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root.addHandler(file_handler)

    return root
