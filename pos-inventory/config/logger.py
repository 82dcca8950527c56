"""
Logging setup.

Modules log through `logging.getLogger(__name__)` and attach structured fields
with `extra=`. This module only wires handlers onto the root logger once.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from config.settings import Settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure the root logger with console output and, when LOG_FILE is set,
    a rotating file handler (5 MB, 3 backups).

    Calling it again is a no-op once handlers are installed.
    """

    settings = settings or Settings()
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if root.hasHandlers():
        return root

    formatter = logging.Formatter(_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root


__all__ = ["setup_logging"]
