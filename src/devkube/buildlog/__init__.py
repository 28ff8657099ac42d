"""
Build logger for the devkube package.

This module turns the build service's event stream into one human-readable
log file per service:

- LogStore: per-service two-region log files
- StatusMultiplexer: live block of in-flight transfer progress
- EventProcessor: event filtering, dispatch and listener broadcast
- decoder: parsing of the raw JSON progress stream
"""

from .decoder import decode_solve_status, iter_solve_statuses, parse_timestamp
from .log_store import LogStore, ServiceLog, format_timestamp
from .processor import EventProcessor, ListenerRegistry
from .status import StatusMultiplexer, VertexStatus, humanize_bytes, short_id

__all__ = [
    "EventProcessor",
    "ListenerRegistry",
    "LogStore",
    "ServiceLog",
    "StatusMultiplexer",
    "VertexStatus",
    "decode_solve_status",
    "format_timestamp",
    "humanize_bytes",
    "iter_solve_statuses",
    "parse_timestamp",
    "short_id",
]
