"""
Logging configuration utilities.
Sets up console logging and, optionally, the structured activity log.
"""

import sys
import logging
from typing import Optional

from pa_bill_tracker.utils.activity_log_handler import ActivityLogHandler

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(level=logging.INFO, activity_log_path: Optional[str] = None) -> None:
    """
    Configure logging for a pipeline run.

    This function:
    1. Sets up basic console logging if not already configured
    2. Adds an ActivityLogHandler when activity_log_path is given
    3. Never adds a second ActivityLogHandler

    Args:
        level: Logging level name or number (default: INFO)
        activity_log_path: JSON-lines file for structured activity records
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    root_logger.setLevel(level)

    if not activity_log_path:
        return

    for handler in root_logger.handlers:
        if isinstance(handler, ActivityLogHandler):
            # Already configured
            return

    activity_handler = ActivityLogHandler(activity_log_path, level=level)
    root_logger.addHandler(activity_handler)
