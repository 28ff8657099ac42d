"""
Per-service log files.

Each service gets exactly one `<service>.log` file, truncated when the store
first writes to it. A file is made of two regions:

- a permanent prefix of `[timestamp] message` lines that only ever grows, and
- an ephemeral tail holding the current status block, which is replaced
  wholesale on every status update.

ServiceLog tracks the byte offset where the permanent region ends and keeps
the tail in memory, so every write seeks to that offset, writes, and truncates
the file behind it. The file therefore never keeps bytes of an older, longer
status block.
"""

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, List, Sequence

from ..validation import (
    ErrorSeverity,
    LogWriteError,
    ValidationError,
    handle_file_error,
    validate_service_name,
)

logger = logging.getLogger(__name__)


def format_timestamp(when: datetime) -> str:
    """Render a timestamp in local time; naive values are taken as local already."""
    return when.astimezone().strftime("%Y-%m-%d %H:%M:%S.%f %z")


def format_line(when: datetime, message: str) -> str:
    return f"[{format_timestamp(when)}] {message}"


class ServiceLog:
    """
    One open log file split into a permanent region and a status tail.

    Not thread safe on its own; LogStore serialises access.
    """

    def __init__(self, service: str, path: Path, handle: BinaryIO):
        self.service = service
        self.path = path
        self._handle = handle
        self._permanent_end = 0
        self._tail = b""

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def tail(self) -> str:
        return self._tail.decode("utf-8")

    def append_line(self, line: str) -> None:
        """Add a line to the permanent region and re-write the tail after it."""
        data = line.encode("utf-8")
        self._handle.seek(self._permanent_end)
        self._handle.write(data)
        self._permanent_end += len(data)
        self._write_tail()

    def replace_tail(self, text: str) -> None:
        self._tail = text.encode("utf-8")
        self._handle.seek(self._permanent_end)
        self._write_tail()

    def _write_tail(self) -> None:
        self._handle.write(self._tail)
        self._handle.truncate()
        self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class LogStore:
    """
    Owns one ServiceLog per service inside a log directory.

    File creation happens under a dedicated open lock; all writes go through
    a single coarse write lock held only for the write itself.
    """

    def __init__(self, log_directory: Path):
        self.log_directory = Path(log_directory)
        self._logs: Dict[str, ServiceLog] = {}
        self._open_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._closed = False

    def log_path(self, service: str) -> Path:
        return self.log_directory / f"{service}.log"

    def services(self) -> List[str]:
        with self._open_lock:
            return list(self._logs)

    def _service_log(self, service: str) -> ServiceLog:
        with self._open_lock:
            if self._closed:
                raise LogWriteError("the log store has been closed", service=service)

            existing = self._logs.get(service)
            if existing is not None:
                return existing

            try:
                validate_service_name(service)
            except ValidationError as e:
                raise LogWriteError(f"invalid service name for a log file: {e}", service=service) from e

            try:
                self.log_directory.mkdir(mode=0o700, parents=True, exist_ok=True)
            except OSError as e:
                handle_file_error(
                    error=e,
                    context=f"creating log directory {self.log_directory}",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                )
                raise LogWriteError(
                    f"Could not make the logs output directory at {self.log_directory}: {e}",
                    service=service,
                ) from e

            path = self.log_path(service)
            try:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
                handle = os.fdopen(fd, "wb")
            except OSError as e:
                handle_file_error(
                    error=e,
                    context=f"opening {path}",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                )
                raise LogWriteError(f"Could not open log file {path}: {e}", service=service) from e

            service_log = ServiceLog(service, path, handle)
            self._logs[service] = service_log
            logger.debug(f"Opened log file for {service}: {path}")
            return service_log

    def append(self, service: str, when: datetime, message: str) -> str:
        """
        Commit a permanent line to a service's log.

        Args:
            service: Service the line belongs to
            when: Timestamp printed in front of the message
            message: Line text; surrounding newlines are removed

        Returns:
            The message as written, without timestamp

        Raises:
            LogWriteError: If the file cannot be created or written
        """
        text = message.strip("\r\n")
        line = format_line(when, text) + "\n"
        service_log = self._service_log(service)
        with self._write_lock:
            try:
                service_log.append_line(line)
            except (OSError, ValueError) as e:
                raise LogWriteError(
                    f"Could not write to {service_log.path}: {e}", service=service
                ) from e
        return text

    def replace_status_block(self, service: str, lines: Sequence[str]) -> None:
        """
        Replace the ephemeral tail of a service's log with the given lines.

        Raises:
            LogWriteError: If the file cannot be created or written
        """
        block = "".join(f"{line}\n" for line in lines)
        service_log = self._service_log(service)
        with self._write_lock:
            try:
                service_log.replace_tail(block)
            except (OSError, ValueError) as e:
                raise LogWriteError(
                    f"Could not write status to {service_log.path}: {e}", service=service
                ) from e

    def status_block(self, service: str) -> str:
        """The tail currently held for a service, empty if it has no log yet."""
        with self._open_lock:
            service_log = self._logs.get(service)
        if service_log is None:
            return ""
        with self._write_lock:
            return service_log.tail

    def close(self) -> None:
        """Close every log file. Safe to call more than once."""
        with self._open_lock:
            if self._closed:
                return
            self._closed = True
            logs = list(self._logs.values())
            self._logs.clear()

        with self._write_lock:
            for service_log in logs:
                try:
                    service_log.close()
                except OSError as e:
                    logger.warning(f"Failed to close log file {service_log.path}: {e}")

        logger.debug(f"Closed {len(logs)} log files")

    def __enter__(self) -> "LogStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
