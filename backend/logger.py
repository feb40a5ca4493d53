"""Structured logging configuration for the document retrieval backend."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# Attributes present on every LogRecord; anything else came in via `extra=`
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        # Fields passed with logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value
        
        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Set up structured JSON logging, replacing any existing root handlers."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    
    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.addHandler(handler)
    
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
