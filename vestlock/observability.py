"""
VESTLOCK Observability

Structured logging for the validation core. Every validation call carries a
correlation ID so the host can tie a rejection back to the transaction that
produced it.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Validator Code                        │
    │  logger.warning("rejected", error_code=..., kind=...)   │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                    VestlockLogger                        │
    │  Component tagging, correlation IDs, structured context │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │     StructuredHandler (JSON lines) │ plain StreamHandler │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
import weakref
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

from vestlock.config import ConfigManager, get_config

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


# marks handlers a VestlockLogger installed itself
_OWNED = "_vestlock_owned"


class LogComponent(Enum):
    """VESTLOCK components for categorization."""
    SCHEDULE = "schedule"
    VALIDATOR = "validator"
    TRANSACTION = "transaction"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    component: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> Any:
        # resolved per write so a replaced sys.stderr is honoured
        return self._stream if self._stream is not None else sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                component=getattr(record, "component", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class VestlockLogger:
    """
    Structured logger for VESTLOCK components.

    Level and output format follow the ``observability`` configuration
    section; every live logger is refreshed when the configuration changes.
    """

    def __init__(self, name: str, component: LogComponent):
        self.name = name
        self.component = component
        self._logger = logging.getLogger(f"vestlock.{component.value}.{name}")
        self._structured: Optional[bool] = None
        self.refresh()
        _live_loggers.add(self)

    def refresh(self) -> None:
        """Re-apply level and output format from the current configuration."""
        settings = get_config().observability
        self._logger.setLevel(getattr(logging, settings.log_level.get().upper()))

        structured = settings.structured_logs.get()
        if structured == self._structured:
            return

        # only handlers installed here are swapped; attached ones are left alone
        for old in [h for h in self._logger.handlers if getattr(h, _OWNED, False)]:
            self._logger.removeHandler(old)

        if structured:
            handler: logging.Handler = StructuredHandler()
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            ))
        setattr(handler, _OWNED, True)
        self._logger.addHandler(handler)
        self._structured = structured

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        **context: Any,
    ) -> None:
        extra = {
            "component": self.component.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, error_code: str = "", **context: Any) -> None:
        self._log(logging.WARNING, message, error_code=error_code, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


_live_loggers: "weakref.WeakSet[VestlockLogger]" = weakref.WeakSet()


def refresh_loggers() -> None:
    """Re-apply the observability configuration to every live logger."""
    for live in list(_live_loggers):
        live.refresh()


ConfigManager.subscribe(refresh_loggers)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if absent."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, component: LogComponent) -> VestlockLogger:
    """Get a logger for a VESTLOCK component."""
    return VestlockLogger(name, component)


T = TypeVar("T")


def timed_operation(
    logger: VestlockLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
