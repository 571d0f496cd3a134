"""
Logging configuration for the log forwarder
"""

import logging
import os
import sys


def setup_logging(level: str = None) -> logging.Logger:
    """
    Set up logging configuration for the log forwarder

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The configured root logger
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, level, logging.INFO)

    # No-op under Lambda, which installs its own handler on the root logger
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers:
        handler.setLevel(log_level)

    return root_logger
