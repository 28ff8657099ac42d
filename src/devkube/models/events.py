"""
Build event data models.

The build service reports progress as batches of three kinds of records:
vertexes (build steps), statuses (byte progress of a transfer belonging to a
vertex) and raw log output of a step. One batch is a SolveStatus.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

INTERNAL_VERTEX_PREFIX = "[internal]"


@dataclass
class VertexEvent:
    """One build step, e.g. `[2/6] COPY app.py ./`."""

    name: str
    digest: str = ""
    cached: bool = False
    error: str = ""

    @property
    def internal(self) -> bool:
        """Bookkeeping steps of the build service itself."""
        return self.name.startswith(INTERNAL_VERTEX_PREFIX)


@dataclass
class StatusEvent:
    """Byte progress of one transfer (layer pull, context upload...)."""

    id: str
    timestamp: datetime
    current: int = 0
    # 0 means the total size is unknown
    total: int = 0
    completed: bool = False
    name: str = ""
    vertex: str = ""


@dataclass
class LogLineEvent:
    """Raw output of a build step."""

    data: str
    timestamp: datetime
    vertex: str = ""
    stream: int = 1


@dataclass
class SolveStatus:
    """A batch of build events as delivered by the build service."""

    vertexes: List[VertexEvent] = field(default_factory=list)
    statuses: List[StatusEvent] = field(default_factory=list)
    logs: List[LogLineEvent] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.vertexes or self.statuses or self.logs)
