"""
Activity Log Handler for Python logging.
Appends structured run activity to a JSON-lines file.
"""

import os
import json
import logging
from datetime import datetime, timezone


class ActivityLogHandler(logging.Handler):
    """
    Logging handler that writes structured activity records as JSON lines.

    Only logs records that have structured metadata in the 'extra' parameter:
    - log_type: Type of activity (e.g., 'bill_tracker')
    - action: Specific action (e.g., 'build_data')
    - status: Status of the activity (e.g., 'running', 'success', 'failed')

    Optional fields in 'extra':
    - metadata: JSON-serializable dict with additional context
    - error_message: Error message (if not provided, uses log message for ERROR level)
    - duration_seconds: Duration of the activity in seconds
    """

    def __init__(self, path: str, level=logging.NOTSET):
        super().__init__(level)
        self.path = path

    def emit(self, record: logging.LogRecord):
        try:
            if not hasattr(record, 'log_type') or not hasattr(record, 'action') or not hasattr(record, 'status'):
                # Not a structured log, skip it
                return

            error_message = getattr(record, 'error_message', None)
            if error_message is None and record.levelno >= logging.ERROR:
                error_message = record.getMessage()

            entry = {
                'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace('+00:00', 'Z'),
                'level': record.levelname,
                'log_type': getattr(record, 'log_type'),
                'action': getattr(record, 'action'),
                'status': getattr(record, 'status'),
                'message': record.getMessage(),
                'metadata': getattr(record, 'metadata', None),
                'error_message': error_message,
                'duration_seconds': getattr(record, 'duration_seconds', None),
            }
            line = json.dumps(entry)

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
        except Exception:
            # Don't let logging errors break the application
            self.handleError(record)
