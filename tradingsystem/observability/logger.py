"""
Structured logging for the trading system.
Supports JSON and text formats.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"[{timestamp}] {record.levelname:8} {record.name}: {record.getMessage()}"

        if hasattr(record, "extra_fields") and record.extra_fields:
            extras = " | ".join(f"{k}={v}" for k, v in record.extra_fields.items())
            base = f"{base} | {extras}"

        if record.exc_info:
            base = f"{base}\n{self.formatException(record.exc_info)}"

        return base


class StructuredLogger:
    """
    Wrapper around standard logger with structured logging support.
    """

    def __init__(self, name: str, logger: logging.Logger):
        self._name = name
        self._logger = logger

    def _log(self, level: int, msg: str, **kwargs) -> None:
        """Log with optional extra fields."""
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            self._name, level, "", 0, msg, (), None
        )
        if kwargs:
            record.extra_fields = kwargs
        self._logger.handle(record)

    def debug(self, msg: str, **kwargs) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, **kwargs)

    def calibration(
        self,
        rule: str,
        forecast_scalar: float,
        base_scale: float,
        **kwargs
    ) -> None:
        """Log a finished rule calibration."""
        self.debug(
            f"CALIBRATION: {rule} scalar={forecast_scalar:.6f} (base scale: {base_scale})",
            rule=rule,
            forecast_scalar=forecast_scalar,
            base_scale=base_scale,
            **kwargs
        )

    def position(
        self,
        action: str,
        side: str,
        units: int,
        price: float,
        **kwargs
    ) -> None:
        """Log a simulated position event."""
        self.debug(
            f"POSITION: {action} {units} {side} @ {price}",
            action=action,
            side=side,
            units=units,
            price=price,
            **kwargs
        )


# Logger registry
_loggers: dict[str, StructuredLogger] = {}
_configured = False


def configure_logging(
    level: str = "INFO",
    format_type: str = "text",
    stream=None
) -> None:
    """
    Configure the logging system.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_type: "json" or "text".
        stream: Output stream (defaults to stdout).
    """
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if format_type.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger.addHandler(handler)

    _configured = True


def get_logger(name: str, level: Optional[str] = None) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (typically module name).
        level: Optional level for this logger only.

    Returns:
        StructuredLogger instance.
    """
    if not _configured:
        configure_logging()

    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, logging.getLogger(name))

    if level:
        logging.getLogger(name).setLevel(getattr(logging, level.upper()))

    return _loggers[name]
