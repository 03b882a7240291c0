"""Booking-scoped logging context.

Every record emitted by the engine carries two correlation fields:

- ``request_id``: one inbound call or one batch run (e.g. a reminder sweep).
- ``booking_id``: the booking a lifecycle method is currently working on,
  so a cancellation can be followed from the transition through the store
  write to the notifications it sends.

Usage:
    from booking_engine.logging_context import booking_scope, get_request_logger

    logger = get_request_logger(__name__)
    with booking_scope("BK-1a2b3c"):
        logger.info("Confirming")  # record.booking_id == "BK-1a2b3c"
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

LOG_FORMAT = (
    "%(asctime)s [%(name)s] %(levelname)s "
    "req=%(request_id)s booking=%(booking_id)s: %(message)s"
)

_UNSET = "-"
_request_id: ContextVar[str] = ContextVar("request_id", default=_UNSET)
_booking_id: ContextVar[str] = ContextVar("booking_id", default=_UNSET)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


@contextmanager
def booking_scope(booking_id: str) -> Iterator[None]:
    """Tag records logged inside the block with ``booking_id``; restores the outer value on exit."""
    token = _booking_id.set(booking_id)
    try:
        yield
    finally:
        _booking_id.reset(token)


class BookingContextFilter(logging.Filter):
    """Copies the current request and booking IDs onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        record.booking_id = _booking_id.get()  # type: ignore[attr-defined]
        return True


def install_context_filter(handler: logging.Handler) -> None:
    """Attach the filter to a handler so ``LOG_FORMAT`` works for any logger's records."""
    if not any(isinstance(f, BookingContextFilter) for f in handler.filters):
        handler.addFilter(BookingContextFilter())


def get_request_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, BookingContextFilter) for f in logger.filters):
        logger.addFilter(BookingContextFilter())
    return logger
