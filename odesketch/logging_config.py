"""
Logging Configuration
Sets up the package logger and the separate metrics sink.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "odesketch"
METRICS_LOGGER = "odesketch.metrics"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    metrics_file: Optional[str] = None,
) -> None:
    """
    Configures the 'odesketch' logger namespace.

    Args:
        level: Logging level for console and log file (e.g. logging.DEBUG)
        log_file: Optional path to save logs to a file.
        metrics_file: Optional path for solve timing / input records. Metrics
            never reach the console.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Check if handlers already exist to avoid duplicate logs on streamlit reruns
    if logger.hasHandlers():
        logger.handlers.clear()

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # 1. Console Handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 2. File Handler (Optional)
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 3. Metrics, kept out of the console and the log file
    metrics = logging.getLogger(METRICS_LOGGER)
    metrics.propagate = False
    metrics.handlers.clear()
    if metrics_file:
        metrics.setLevel(logging.DEBUG)
        metrics_handler = logging.FileHandler(metrics_file, mode='w', encoding='utf-8')
        metrics_handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
        metrics.addHandler(metrics_handler)
    else:
        metrics.addHandler(logging.NullHandler())

    logger.info(f"Logging initialized with level {logging.getLevelName(level)}.")
