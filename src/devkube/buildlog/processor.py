"""
Build event processing.

EventProcessor is the entry point of the build logger: it receives batches of
build events for a service, filters the noise, writes permanent lines through
the LogStore, routes progress statuses to the StatusMultiplexer and tells
registered listeners about every line it produced.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List

from ..models.config import BuildLogConfig
from ..models.events import SolveStatus
from ..validation import ErrorSeverity, LogWriteError, handle_error
from .log_store import LogStore
from .status import StatusMultiplexer

logger = logging.getLogger(__name__)

LogListener = Callable[[str, str], None]


class ListenerRegistry:
    """
    Observers of committed log lines.

    Registration and removal may happen from any thread while events are
    being processed; notification works on a snapshot taken under the lock
    and calls the listeners after releasing it.
    """

    def __init__(self):
        self._listeners: Dict[int, LogListener] = {}
        self._lock = threading.Lock()
        self._next_token = 0

    def add(self, callback: LogListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A function that unregisters the listener again
        """
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = callback

        def _remove() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return _remove

    def snapshot(self) -> List[LogListener]:
        with self._lock:
            return list(self._listeners.values())

    def notify(self, service: str, line: str) -> None:
        for listener in self.snapshot():
            try:
                listener(service, line)
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"log listener for {service}",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)


class EventProcessor:
    """
    Turns build events into per-service logs.

    Listeners receive the line text without timestamp, newline terminated.
    They run on the thread that processes the event, after the write, so a
    slow listener delays the next event of that same stream but never holds
    a lock other writers need.
    """

    def __init__(
        self,
        store: LogStore,
        verbose: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.verbose = verbose
        self.statuses = StatusMultiplexer(store)
        self.listeners = ListenerRegistry()
        self._clock = clock

    @classmethod
    def from_config(cls, config: BuildLogConfig) -> "EventProcessor":
        return cls(LogStore(Path(config.log_dir)), verbose=config.verbose)

    def add_listener(self, callback: LogListener) -> Callable[[], None]:
        return self.listeners.add(callback)

    def log(self, service: str, when: datetime, message: str) -> None:
        """
        Commit a permanent line and broadcast it.

        Raises:
            LogWriteError: If the service's log cannot be written
        """
        text = self.store.append(service, when, message)
        self.listeners.notify(service, text + "\n")

    def _dump(self, service: str, message: str) -> None:
        if self.verbose:
            self.log(service, self._clock(), message)

    def process(self, service: str, status: SolveStatus) -> None:
        """
        Process one batch of build events for a service.

        Raises:
            LogWriteError: If the service's log cannot be written
        """
        for vertex in status.vertexes:
            self._dump(
                service,
                f"Vertex: '{vertex.name}',  '{vertex.error}',  '{vertex.digest}'",
            )
            if vertex.internal:
                continue

            message = vertex.name
            if vertex.cached:
                message = "cached: " + message

            if vertex.error:
                try:
                    self.log(service, self._clock(), f"{vertex.error}: LAYERID={vertex.digest}")
                except LogWriteError as e:
                    raise LogWriteError(
                        f"Could not log failure to {service}'s logs: {e}", service=service
                    ) from e

            try:
                self.log(service, self._clock(), message)
            except LogWriteError as e:
                raise LogWriteError(
                    f"Could not write to {service}'s logs: {e}", service=service
                ) from e

        for vertex_status in status.statuses:
            self._dump(
                service,
                f"Status: '{vertex_status.name}'.  '{vertex_status.id}',  "
                f"'{vertex_status.vertex}',  (curr={vertex_status.current}, total={vertex_status.total})",
            )
            try:
                lines = self.statuses.update(service, vertex_status)
            except LogWriteError as e:
                raise LogWriteError(
                    f"Could not write status to {service}'s logs: {e}", service=service
                ) from e
            for line in lines:
                self.listeners.notify(service, line + "\n")

        for log_line in status.logs:
            self._dump(service, f"Log: '{log_line.data}',  '{log_line.vertex}'")
            try:
                self.log(service, log_line.timestamp, log_line.data)
            except LogWriteError as e:
                raise LogWriteError(
                    f"Could not write to {service}'s logs: {e}", service=service
                ) from e

    def close(self) -> None:
        self.statuses.clear()
        self.store.close()

    def __enter__(self) -> "EventProcessor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
