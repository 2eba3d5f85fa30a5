"""Structured logging utilities.

Emits one JSON object per log line so pipeline steps can be filtered
in Application Insights by ``step`` and ``blob_url``.
"""

import json
import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any

LOGGER_NAME = "image_ingest"


class StructuredLogger:
    """Logger that outputs structured JSON for observability."""

    def __init__(self, logger: logging.Logger | None = None):
        """Initialize structured logger.

        Args:
            logger: Python logger to use (defaults to the package logger)
        """
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        # Context is per thread/task: concurrent invocations share this logger
        self._context: ContextVar[dict[str, Any]] = ContextVar(
            f"{self.logger.name}_log_context", default={}
        )

    @property
    def context(self) -> dict[str, Any]:
        """Context fields of the current invocation."""
        return dict(self._context.get())

    def set_context(self, **kwargs: Any) -> Token:
        """Set persistent context fields for subsequent logs of this invocation.

        Args:
            **kwargs: Context fields (e.g., blob_url)

        Returns:
            Token to pass to clear_context to restore the previous context
        """
        return self._context.set({**self._context.get(), **kwargs})

    def clear_context(self, token: Token | None = None) -> None:
        """Restore the context from before ``token`` was issued, or drop it all."""
        if token is not None:
            self._context.reset(token)
        else:
            self._context.set({})

    def _format_log(
        self,
        level: str,
        step: str,
        message: str,
        duration_ms: int | None = None,
        **kwargs: Any,
    ) -> str:
        """Format a structured log entry.

        Args:
            level: Log level (INFO, WARNING, ERROR)
            step: Pipeline step (trigger, input, format, analyze, publish, complete)
            message: Human-readable message
            duration_ms: Operation duration in milliseconds
            **kwargs: Additional fields

        Returns:
            JSON-formatted log string
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "step": step,
            "message": message,
            **self._context.get(),
            **kwargs,
        }

        if duration_ms is not None:
            entry["duration_ms"] = duration_ms

        return json.dumps(entry, default=str)

    def info(
        self,
        step: str,
        message: str,
        duration_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """Log info-level structured message."""
        self.logger.info(self._format_log("INFO", step, message, duration_ms, **kwargs))

    def warning(
        self,
        step: str,
        message: str,
        duration_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """Log warning-level structured message."""
        self.logger.warning(
            self._format_log("WARNING", step, message, duration_ms, **kwargs)
        )

    def error(
        self,
        step: str,
        message: str,
        duration_ms: int | None = None,
        **kwargs: Any,
    ) -> None:
        """Log error-level structured message."""
        self.logger.error(
            self._format_log("ERROR", step, message, duration_ms, **kwargs)
        )

    @contextmanager
    def timed_operation(self, step: str, message: str, **kwargs: Any):
        """Context manager for timing operations.

        Args:
            step: Pipeline step
            message: Message to log on completion
            **kwargs: Additional fields

        Yields:
            dict that can be updated with additional fields during operation
        """
        start_time = time.time()
        extra_fields: dict[str, Any] = {}

        try:
            yield extra_fields
            duration_ms = int((time.time() - start_time) * 1000)
            self.info(step, message, duration_ms=duration_ms, **kwargs, **extra_fields)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            self.error(
                step,
                f"{message} - FAILED: {e!s}",
                duration_ms=duration_ms,
                error=str(e),
                **kwargs,
                **extra_fields,
            )
            raise


# Global logger instance
structured_logger = StructuredLogger()
