# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Logging setup.

The terminal belongs to the UI while Beam runs, so log records go to a file
(BEAM_LOG_FILE or <state>/beam.log) rather than stderr.
"""

from __future__ import annotations

import logging

from .config import YAMLConfig

LOGGER_NAME = "beam_cli"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: YAMLConfig) -> logging.Logger:
    """Attach a file handler to the package logger.

    Only creates the log directory when logging is configured. If the file
    cannot be opened, records are dropped.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = str(config.get("log_level", "INFO")).upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_path = config.paths.log_path
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(
            log_path, encoding="utf-8"
        )
    except OSError:
        handler = logging.NullHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
