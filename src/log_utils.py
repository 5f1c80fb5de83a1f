"""
Logging utilities for the cluster rolling upgrader.
"""

import logging
import sys


def setup_logging(
    verbose: bool = False, log_file: str = "cluster-upgrade.log"
) -> logging.Logger:
    """
    Set up logging configuration.

    Worker upgrades run on pool threads, so the thread name is part of
    every record.

    Args:
        verbose: Enable verbose (DEBUG) logging
        log_file: Path to log file

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - [%(threadName)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file),
        ],
    )

    return logging.getLogger(__name__)
