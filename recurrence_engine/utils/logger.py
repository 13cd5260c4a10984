"""
Structured event logging for the recurrence engine.

Events are rendered as one JSON document per line. Handlers and levels come
from the process logging configuration (``logging.basicConfig(level=LOG_LEVEL)``
in ``main`` and ``worker``).
"""

import json
import logging

from recurrence_engine.utils.clock import utcnow


class StructuredLogger:
    """Logs scheduling events as JSON payloads on a standard logger."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _payload(self, level_name: str, event: str, **fields) -> str:
        log_data = {
            "timestamp": utcnow().isoformat(),
            "level": level_name,
            "event": event,
            "service": self.logger.name,
        }
        log_data.update(fields)
        return json.dumps(log_data, default=str)

    def log(self, level: int, event: str, **fields):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._payload(logging.getLevelName(level), event, **fields))

    def info(self, event: str, **fields):
        self.log(logging.INFO, event, **fields)

    def error(self, event: str, **fields):
        self.log(logging.ERROR, event, **fields)

    def exception(self, event: str, **fields):
        """Log at error level with the active traceback attached."""
        if self.logger.isEnabledFor(logging.ERROR):
            self.logger.exception(self._payload("ERROR", event, **fields))


scheduler_logger = StructuredLogger("recurrence_engine.scheduler")
