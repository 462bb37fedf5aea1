#!/usr/bin/env python3
"""
Confluent Ops Toolkit
Copyright (c) 2026 Paul Harvener, Data-Blitz Inc
SPDX-License-Identifier: MIT

Run log for schema promotion: every line goes to the log file, only errors
(or everything, in debug mode) are echoed to the operator.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "schema_promotion"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = "schema_promotion.log"


def configure_run_log(log_file: str | Path = DEFAULT_LOG_FILE, debug: bool = False) -> logging.Logger:
    """Reset the promotion logger to a fresh log file plus a filtered console echo."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT)

    # Each run starts a new log file, then appends for the rest of the run.
    file_handler = logging.FileHandler(Path(log_file), mode="w", encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.ERROR)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info("Starting schema promotion")
    return logger


def close_run_log() -> None:
    """Flush and detach the run log handlers."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.flush()
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
