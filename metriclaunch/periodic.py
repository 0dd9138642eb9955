"""Readers that connect a metrics producer to a push exporter on a timer."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError
from datetime import timedelta
from typing import Any, Callable, Optional, Protocol, Union

DEFAULT_INTERVAL = 30.0
DEFAULT_TIMEOUT = DEFAULT_INTERVAL

_log = logging.getLogger(__name__)

ErrorHandler = Callable[[BaseException], None]


def _default_handler(error: BaseException) -> None:
    _log.error("%s", error)


_error_handler: ErrorHandler = _default_handler
_handler_lock = threading.Lock()


def set_error_handler(handler: Optional[ErrorHandler]) -> ErrorHandler:
    """Install the handler for errors that cannot be returned to a caller.

    Passing ``None`` restores the default, which logs the error.
    Returns the previously installed handler.
    """
    global _error_handler
    with _handler_lock:
        previous = _error_handler
        _error_handler = handler if handler is not None else _default_handler
    return previous


def handle_error(error: BaseException) -> None:
    """Pass an error to the installed error handler."""
    with _handler_lock:
        handler = _error_handler
    handler(error)


class MultipleReaderRegistrationError(RuntimeError):
    """A reader was registered with more than one producer."""


class Producer(Protocol):
    """Performs a collection on behalf of a reader."""

    def produce(self, previous: Any) -> Any:
        """Return metrics from one collection, reusing ``previous`` if given."""


class PushExporter(Protocol):
    """An exporter that receives collected metrics."""

    def __str__(self) -> str: ...

    def export_metrics(self, context: "_Context", metrics: Any) -> None:
        """Export data from a periodic collection."""

    def shutdown_metrics(self, context: "_Context", metrics: Any) -> None:
        """Export the final data at shutdown."""

    def force_flush_metrics(self, context: "_Context", metrics: Any) -> None:
        """Export data collected because of a flush request."""


class Reader(Protocol):
    """The link between the SDK and an exporter."""

    def __str__(self) -> str: ...

    def register(self, producer: Producer) -> None:
        """Begin reading from the producer."""

    def force_flush(self) -> None:
        """Flush pending data."""

    def shutdown(self) -> None:
        """Stop reading and export final data."""


class _Context:
    """Cancellation and deadline state handed to exporter methods."""

    def __init__(self, parent: Optional["_Context"] = None, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self._children: set = set()
        self._parent = parent
        self.deadline = None if timeout is None else time.monotonic() + timeout
        if parent is not None:
            parent._attach(self)

    def _attach(self, child: "_Context") -> None:
        with self._lock:
            error = self._error
            if error is None:
                self._children.add(child)
        if error is not None:
            child._cancel(error)

    def _detach(self, child: "_Context") -> None:
        with self._lock:
            self._children.discard(child)

    def _close(self) -> None:
        if self._parent is not None:
            self._parent._detach(self)

    def _cancel(self, error: BaseException) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            children = list(self._children)
            self._children.clear()
            self._event.set()
        for child in children:
            child._cancel(error)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancel(CancelledError("context canceled"))

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self._cancel(TimeoutError("context deadline exceeded"))

    def done(self) -> bool:
        """Whether the context has been cancelled or has expired."""
        self._check_deadline()
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context ends or ``timeout`` seconds pass; return done()."""
        limit = None if timeout is None else time.monotonic() + timeout
        while not self.done():
            ends = [t for t in (limit, self.deadline) if t is not None]
            if not ends:
                self._event.wait()
                continue
            end = min(ends)
            self._event.wait(max(end - time.monotonic(), 0.0))
            if limit is not None and time.monotonic() >= limit:
                return self.done()
        return True

    @property
    def error(self) -> Optional[BaseException]:
        """Why the context ended: TimeoutError or CancelledError, or None."""
        self._check_deadline()
        return self._error


def _seconds(value: Union[float, int, timedelta, None]) -> float:
    if value is None:
        return 0.0
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _fraction(value: int, digits: int) -> str:
    whole, frac = divmod(value, 10**digits)
    if frac:
        return f"{whole}.{str(frac).zfill(digits).rstrip('0')}"
    return str(whole)


def _format_duration(seconds: float) -> str:
    nanos = round(seconds * 1_000_000_000)
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_fraction(nanos, 3)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_fraction(nanos, 6)}ms"
    hours, rest = divmod(nanos, 3600 * 1_000_000_000)
    minutes, rest = divmod(rest, 60 * 1_000_000_000)
    text = f"{_fraction(rest, 9)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{text}"
    if minutes:
        return f"{sign}{minutes}m{text}"
    return f"{sign}{text}"


class PeriodicReader:
    """Collects from a producer and pushes to an exporter at a fixed interval.

    Intervals and timeouts are in seconds; values that are not positive
    fall back to the defaults.  The timeout applies to each periodic
    export and defaults to the interval.
    """

    def __init__(
        self,
        exporter: PushExporter,
        interval: Union[float, timedelta],
        timeout: Union[float, timedelta, None] = None,
    ):
        interval_s = _seconds(interval)
        timeout_s = interval_s if timeout is None else _seconds(timeout)
        self.interval = interval_s if interval_s > 0 else DEFAULT_INTERVAL
        self.timeout = timeout_s if timeout_s > 0 else DEFAULT_TIMEOUT
        self._exporter = exporter
        self._producer: Optional[Producer] = None
        self._data: Any = None
        self._lock = threading.Lock()
        self._stop: Optional[_Context] = None
        self._thread: Optional[threading.Thread] = None

    def __str__(self) -> str:
        return f"{self._exporter} interval {_format_duration(self.interval)}"

    def register(self, producer: Producer) -> None:
        """Start the periodic export loop reading from ``producer``."""
        if self._producer is not None:
            handle_error(
                MultipleReaderRegistrationError(
                    f"{self}: multiple reader registration"
                )
            )
            return
        self._producer = producer
        self._stop = _Context()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name=f"periodic-reader", daemon=True
        )
        self._thread.start()

    def _run(self, stop: _Context) -> None:
        next_tick = time.monotonic() + self.interval
        while True:
            if stop.wait(max(next_tick - time.monotonic(), 0.0)):
                return
            context = _Context(stop, self.timeout)
            try:
                self._collect(context, self._exporter.export_metrics)
            except Exception as error:  # noqa: BLE001 - reported to the handler
                handle_error(error)
            finally:
                context._close()
            now = time.monotonic()
            next_tick = max(next_tick + self.interval, now)

    def _collect(self, context: _Context, method: Callable[[_Context, Any], Any]) -> None:
        if self._producer is None:
            raise RuntimeError(f"{self}: reader is not registered")
        with self._lock:
            self._data = self._producer.produce(self._data)
            method(context, self._data)

    def shutdown(self) -> None:
        """Stop the export loop, wait for it, then export final data."""
        if self._stop is None or self._thread is None:
            raise RuntimeError(f"{self}: reader is not registered")
        self._stop.cancel()
        if self._thread is not threading.current_thread():
            self._thread.join()
        self._collect(_Context(), self._exporter.shutdown_metrics)

    def force_flush(self) -> None:
        """Collect now, waiting for any export in progress, and flush."""
        self._collect(_Context(), self._exporter.force_flush_metrics)