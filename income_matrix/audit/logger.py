"""
Audit Logger

Every mutation that goes through the service is recorded. This gives:
1. A structured local log of who changed which cell and when
2. A hook for views that re-derive totals after each change

The audit logger:
- Always logs locally through structlog
- Forwards events to subscribed listeners
- Never lets a failing listener break the mutation that produced the event
"""

import logging
from collections.abc import Awaitable, Callable
from inspect import isawaitable
from typing import Optional, Union

import structlog

from income_matrix.models.events import IncomeEvent, IncomeEventSeverity


def configure_logging(level: Union[int, str] = logging.INFO, json_output: bool = True) -> None:
    """
    Configure stdlib logging and structlog.

    Called once on import with defaults; entrypoints call it again with
    the configured level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


Listener = Callable[[IncomeEvent], Union[None, Awaitable[None]]]


class AuditLogger:
    """
    Central audit logging service.

    Listeners may be plain functions or coroutine functions.
    """

    def __init__(self, listeners: Optional[list[Listener]] = None):
        self._listeners: list[Listener] = list(listeners or [])
        self._logger = structlog.get_logger("income_matrix.audit")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def log(self, event: IncomeEvent) -> None:
        """Log an event locally and notify listeners."""
        log_dict = event.to_log_dict()
        event_name = log_dict.pop("event_type")

        if event.severity == IncomeEventSeverity.ERROR:
            self._logger.error(event_name, **log_dict)
        elif event.severity == IncomeEventSeverity.WARNING:
            self._logger.warning(event_name, **log_dict)
        elif event.severity == IncomeEventSeverity.DEBUG:
            self._logger.debug(event_name, **log_dict)
        else:
            self._logger.info(event_name, **log_dict)

        for listener in list(self._listeners):
            try:
                result = listener(event)
                if isawaitable(result):
                    await result
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_listener_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
