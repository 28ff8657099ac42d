"""
RFC 3339 timestamp parsing.

Go tooling (the build service, kubectl) prints timestamps with up to
nanosecond precision, which datetime.fromisoformat does not accept, so the
fraction is cut to microseconds first.
"""

import re
from datetime import datetime

_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>[Zz]|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Raises:
        ValueError: If the value is not an RFC 3339 timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {value!r}")
    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid timestamp: {value!r}")

    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    zone = match.group("zone")
    if zone in ("Z", "z"):
        zone = "+00:00"
    base = match.group("base").replace("t", "T").replace(" ", "T")
    return datetime.fromisoformat(f"{base}.{fraction}{zone}")
