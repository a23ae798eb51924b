"""
Logging utilities for the transformer.

Provides structured JSON logging with correlation IDs so every line emitted
during one compilation can be traced back to it. Lines go to stderr; stdout is
left for compiled documents.
"""

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    JSON logger with correlation ID support.

    Example:
        logger = StructuredLogger(__name__)
        logger.info("Synthesized stage", action="translateText", order=1)
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None, level: Optional[str] = None) -> None:
        """
        Args:
            name: Logger name, usually the module name
            correlation_id: ID shared by every line of one compilation
            level: Minimum level; defaults to the LOG_LEVEL environment variable
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        """Internal method to emit structured JSON logs."""
        if not self.logger.isEnabledFor(logging.getLevelName(level)):
            return

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "logger": self.logger.name,
            "message": message,
            "correlationId": self.correlation_id,
            **kwargs,
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        print(json.dumps(log_entry, default=str), file=sys.stderr)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level message."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level message."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level message."""
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level message."""
        self._log("DEBUG", message, **kwargs)


def get_logger(name: str, correlation_id: Optional[str] = None, level: Optional[str] = None) -> StructuredLogger:
    """Create a structured logger for a module."""
    return StructuredLogger(name, correlation_id, level)
