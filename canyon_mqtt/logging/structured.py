"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

One JSON object per log line, for log aggregators.

Design:
- Wraps Python's logging module (thread-safe)
- Typed events (LogEvent enum)
- Free-form metadata per entry, merged over the logger's bound context

Example:
    >>> logger = StructuredLogger(component="visits").bind(broker="localhost:1883")
    >>> logger.info(LogEvent.MQTT_CONNECTED, "Connected to broker", {'topic': 'canyon/x'})

Output:
    {"timestamp": "2026-03-02T15:30:45.123456+00:00", "level": "INFO",
     "component": "visits", "event": "mqtt.connected",
     "message": "Connected to broker",
     "metadata": {"broker": "localhost:1883", "topic": "canyon/x"}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger.

    Attributes:
        component: Component name (e.g., "visits")
        context: Metadata added to every entry
        logger: Underlying Python logger instance
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(logger_name or f"canyon_mqtt.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)
            # Lines are already JSON, keep them out of the root handlers
            self.logger.propagate = False

    def bind(self, **context: Any) -> "StructuredLogger":
        """Child logger sharing the same handler, with extra fixed metadata."""
        return StructuredLogger(
            self.component,
            level=self.logger.level,
            logger_name=self.logger.name,
            context={**self.context, **context},
        )

    def entry(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> Dict[str, Any]:
        """The dict that log() serializes."""
        record: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        merged = {**self.context, **(metadata or {})}
        if merged:
            record['metadata'] = merged
        if exc_info is not None:
            record['exception'] = {'type': type(exc_info).__name__, 'message': str(exc_info)}
        return record

    def log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, json.dumps(self.entry(level, event, message, metadata, exc_info), default=str))

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.INFO, event, message, metadata)

    def warning(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.WARNING, event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log ERROR level message; exc_info adds an "exception" object.

        Example:
            >>> try:
            ...     publish()
            ... except OSError as e:
            ...     logger.error(LogEvent.MQTT_PUBLISH_ERROR, "Publish failed", exc_info=e)
        """
        self.log(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """
    Factory function to create configured StructuredLogger.

    Example:
        >>> logger = create_logger("visits", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
