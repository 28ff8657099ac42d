"""
Live status block for in-flight transfers.

Every service keeps a map of status id to its latest VertexStatus. Each update
re-renders the whole block, sorted by the line text after the timestamp, and
hands it to the LogStore as the new file tail. Completed statuses leave the
block and get one final, permanent line instead.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Set

from ..models.events import StatusEvent
from .log_store import LogStore, format_line

logger = logging.getLogger(__name__)

_SIZE_SUFFIXES = ["B", "KB", "MB", "GB", "TB", "PB", "EB"]
_CONTENT_HASH_PREFIX = "sha256:"


def humanize_bytes(size: int) -> str:
    """
    Format a byte count with a base-1024 unit and two decimals.

    >>> humanize_bytes(1536)
    '1.50KB'
    """
    if size == 0:
        return "0B"
    exponent = min((abs(size).bit_length() - 1) // 10, len(_SIZE_SUFFIXES) - 1)
    return f"{size / 1024 ** exponent:.2f}{_SIZE_SUFFIXES[exponent]}"


def short_id(status_id: str) -> str:
    """Abbreviate content-hash ids to 12 hex characters, keep anything else."""
    if status_id.startswith(_CONTENT_HASH_PREFIX):
        return status_id[7:19]
    return status_id


@dataclass
class VertexStatus:
    """Latest known progress of one transfer."""

    id: str
    timestamp: datetime
    current: int = 0
    total: int = 0
    completed: bool = False

    @classmethod
    def from_event(cls, event: StatusEvent) -> "VertexStatus":
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            current=event.current,
            total=event.total,
            completed=event.completed,
        )

    @property
    def progress(self) -> str:
        if self.total != 0:
            return f"{humanize_bytes(self.current)}/{humanize_bytes(self.total)}"
        return humanize_bytes(self.current)

    @property
    def body(self) -> str:
        """Line text without timestamp; also the block's sort key."""
        return f"{short_id(self.id)} {self.progress}"

    def render(self) -> str:
        return format_line(self.timestamp, self.body)


@dataclass
class _ServiceStatuses:
    entries: Dict[str, VertexStatus] = field(default_factory=dict)
    completed: Set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock)


class StatusMultiplexer:
    """
    Tracks in-flight statuses per service and keeps each log's tail current.

    Updates for one service are serialised by a per-service lock which also
    covers the write of the rendered block, so the file tail always matches
    the map it was rendered from.

    Completed ids are remembered until the service is forgotten or the
    multiplexer is cleared, so a late duplicate completion is not committed
    twice. Long-lived owners call forget() once a service's build is over.
    """

    def __init__(self, store: LogStore):
        self._store = store
        self._services: Dict[str, _ServiceStatuses] = {}
        self._services_lock = threading.Lock()

    def _statuses_for(self, service: str) -> _ServiceStatuses:
        with self._services_lock:
            statuses = self._services.get(service)
            if statuses is None:
                statuses = _ServiceStatuses()
                self._services[service] = statuses
            return statuses

    @staticmethod
    def _render(statuses: _ServiceStatuses) -> List[str]:
        ordered = sorted(statuses.entries.values(), key=lambda s: (s.body, s.id))
        return [status.render() for status in ordered]

    def update(self, service: str, event: StatusEvent) -> List[str]:
        """
        Apply one status event.

        Returns:
            Lines (without timestamp) to broadcast to listeners: the final
            line of a completed status, or the re-rendered line otherwise.

        Raises:
            LogWriteError: If the service's log cannot be written
        """
        statuses = self._statuses_for(service)
        status = VertexStatus.from_event(event)
        broadcast: List[str] = []

        with statuses.lock:
            if event.completed:
                statuses.entries.pop(event.id, None)
                self._store.replace_status_block(service, self._render(statuses))
                if event.id in statuses.completed:
                    logger.debug(f"Ignoring repeated completion of {event.id} for {service}")
                else:
                    statuses.completed.add(event.id)
                    broadcast.append(self._store.append(service, event.timestamp, status.body))
            else:
                statuses.entries[event.id] = status
                self._store.replace_status_block(service, self._render(statuses))
                broadcast.append(status.body)

        return broadcast

    def active(self, service: str) -> List[VertexStatus]:
        """Statuses currently shown in a service's block, in display order."""
        statuses = self._statuses_for(service)
        with statuses.lock:
            return sorted(statuses.entries.values(), key=lambda s: (s.body, s.id))

    def rendered_block(self, service: str) -> List[str]:
        statuses = self._statuses_for(service)
        with statuses.lock:
            return self._render(statuses)

    def forget(self, service: str) -> None:
        """Drop every status and completed id held for a service."""
        with self._services_lock:
            statuses = self._services.pop(service, None)
        if statuses is not None:
            logger.debug(f"Forgetting {len(statuses.completed)} completed statuses of {service}")

    def clear(self) -> None:
        with self._services_lock:
            self._services.clear()
