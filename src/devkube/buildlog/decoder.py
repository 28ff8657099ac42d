"""
Decoder for the build service's raw JSON progress stream.

`buildctl build --progress=rawjson` writes one JSON-encoded SolveStatus per
line. Field names are lower-case in current releases and capitalised in older
ones, log data is base64 and timestamps are RFC 3339 with up to nanosecond
precision.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..timestamps import parse_rfc3339
from ..models.events import LogLineEvent, SolveStatus, StatusEvent, VertexEvent
from ..validation import EventDecodeError

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Fractions beyond microseconds are cut off.

    Raises:
        EventDecodeError: If the value is not an RFC 3339 timestamp
    """
    try:
        return parse_rfc3339(value)
    except ValueError as e:
        raise EventDecodeError(str(e)) from e


def _field(record: Dict[str, Any], name: str, default: Any = None) -> Any:
    if name in record:
        return record[name]
    return record.get(name[:1].upper() + name[1:], default)


def _records(batch: Dict[str, Any], name: str) -> List[Dict[str, Any]]:
    records = _field(batch, name) or []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise EventDecodeError(f"'{name}' must be a list of objects")
    return records


def _int(record: Dict[str, Any], name: str) -> int:
    value = _field(record, name, 0) or 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise EventDecodeError(f"'{name}' must be an integer, got {value!r}")
    return value


def _optional_timestamp(record: Dict[str, Any], name: str) -> Optional[datetime]:
    value = _field(record, name)
    if value is None:
        return None
    return parse_timestamp(value)


def decode_vertex(record: Dict[str, Any]) -> VertexEvent:
    return VertexEvent(
        name=str(_field(record, "name", "") or ""),
        digest=str(_field(record, "digest", "") or ""),
        cached=bool(_field(record, "cached", False)),
        error=str(_field(record, "error", "") or ""),
    )


def decode_status(record: Dict[str, Any]) -> StatusEvent:
    status_id = _field(record, "id") or record.get("ID")
    if not status_id:
        raise EventDecodeError("status record without an id")
    timestamp = _optional_timestamp(record, "timestamp")
    if timestamp is None:
        raise EventDecodeError(f"status {status_id} has no timestamp")
    return StatusEvent(
        id=str(status_id),
        timestamp=timestamp,
        current=_int(record, "current"),
        total=_int(record, "total"),
        completed=_optional_timestamp(record, "completed") is not None,
        name=str(_field(record, "name", "") or ""),
        vertex=str(_field(record, "vertex", "") or ""),
    )


def decode_log(record: Dict[str, Any]) -> LogLineEvent:
    raw = _field(record, "data", "") or ""
    try:
        data = base64.b64decode(raw, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        raise EventDecodeError(f"log data is not valid base64: {e}") from e
    timestamp = _optional_timestamp(record, "timestamp")
    if timestamp is None:
        raise EventDecodeError("log record has no timestamp")
    return LogLineEvent(
        data=data,
        timestamp=timestamp,
        vertex=str(_field(record, "vertex", "") or ""),
        stream=_int(record, "stream"),
    )


def decode_solve_status(batch: Dict[str, Any]) -> SolveStatus:
    """
    Decode one parsed JSON progress record.

    Raises:
        EventDecodeError: If the record does not look like a SolveStatus
    """
    if not isinstance(batch, dict):
        raise EventDecodeError(f"progress record must be an object, got {type(batch).__name__}")
    return SolveStatus(
        vertexes=[decode_vertex(r) for r in _records(batch, "vertexes")],
        statuses=[decode_status(r) for r in _records(batch, "statuses")],
        logs=[decode_log(r) for r in _records(batch, "logs")],
    )


def iter_solve_statuses(lines: Iterable[str]) -> Iterator[SolveStatus]:
    """
    Decode a raw JSON progress stream line by line, skipping blank lines.

    Raises:
        EventDecodeError: On the first line that is not valid JSON or not a SolveStatus
    """
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            batch = json.loads(line)
        except json.JSONDecodeError as e:
            raise EventDecodeError(f"line {number} is not valid JSON: {e}") from e
        yield decode_solve_status(batch)
