"""Root-logger setup for the analysis scripts: stdout plus an optional DEBUG log file."""

import sys
import logging

def setup_logging(log_file=None, level=logging.INFO):
    # Get the root logger
    logger = logging.getLogger()

    # Remove existing handlers to avoid duplicate lines on repeated calls
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(SimpleFormatter())
    logger.addHandler(console_handler)

    # File handler keeps the full DEBUG trace (per-cell progress)
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(SimpleFormatter())
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    return logger


class SimpleFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(message)s")
