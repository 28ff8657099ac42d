"""
Unit tests for the raw JSON progress stream decoder.
"""

import base64
import json
from datetime import datetime, timezone

import pytest

from devkube.buildlog import decode_solve_status, iter_solve_statuses, parse_timestamp
from devkube.validation import EventDecodeError


def b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


@pytest.mark.unit
class TestParseTimestamp:
    """Test cases for RFC 3339 parsing."""

    def test_nanoseconds_truncated(self):
        """Test nanosecond fractions are cut to microseconds."""
        parsed = parse_timestamp("2024-05-01T12:00:00.123456789Z")
        assert parsed == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_offset_preserved(self):
        """Test explicit offsets are kept."""
        parsed = parse_timestamp("2024-05-01T14:00:00+02:00")
        assert parsed == datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_no_fraction(self):
        """Test timestamps without a fraction parse."""
        assert parse_timestamp("2024-05-01T12:00:00Z").microsecond == 0

    @pytest.mark.parametrize("value", ["", "yesterday", "2024-05-01", "2024-05-01T12:00:00", 42])
    def test_invalid(self, value):
        """Test malformed timestamps raise EventDecodeError."""
        with pytest.raises(EventDecodeError):
            parse_timestamp(value)


@pytest.mark.unit
class TestDecodeSolveStatus:
    """Test cases for decoding one progress record."""

    def test_full_record(self):
        """Test vertexes, statuses and logs are decoded."""
        batch = {
            "vertexes": [
                {"digest": "sha256:aa", "name": "[1/2] FROM alpine", "cached": True},
                {"digest": "sha256:bb", "name": "[2/2] RUN false", "error": "exit code: 1"},
            ],
            "statuses": [
                {
                    "id": "sha256:cc",
                    "vertex": "sha256:aa",
                    "name": "resolve",
                    "current": 512,
                    "total": 1024,
                    "timestamp": "2024-05-01T12:00:00.5Z",
                    "started": "2024-05-01T11:59:59Z",
                },
                {
                    "id": "done",
                    "current": 10,
                    "timestamp": "2024-05-01T12:00:01Z",
                    "completed": "2024-05-01T12:00:01Z",
                },
            ],
            "logs": [
                {"vertex": "sha256:bb", "stream": 2, "data": b64("oops\n"), "timestamp": "2024-05-01T12:00:02Z"},
            ],
        }
        status = decode_solve_status(batch)

        assert [v.name for v in status.vertexes] == ["[1/2] FROM alpine", "[2/2] RUN false"]
        assert status.vertexes[0].cached is True
        assert status.vertexes[1].error == "exit code: 1"
        assert status.statuses[0].current == 512
        assert status.statuses[0].total == 1024
        assert status.statuses[0].completed is False
        assert status.statuses[1].completed is True
        assert status.logs[0].data == "oops\n"
        assert status.logs[0].stream == 2

    def test_capitalised_fields(self):
        """Test records with capitalised field names decode the same."""
        batch = {
            "Vertexes": [{"Name": "step", "Digest": "d", "Cached": False}],
            "Statuses": [{"ID": "x", "Current": 3, "Timestamp": "2024-05-01T12:00:00Z"}],
        }
        status = decode_solve_status(batch)
        assert status.vertexes[0].name == "step"
        assert status.statuses[0].id == "x"
        assert status.statuses[0].current == 3

    def test_null_vertex_fields(self):
        """Test JSON nulls decode to empty strings rather than 'None'."""
        vertex = decode_solve_status({"vertexes": [{"name": None, "digest": None, "error": None}]}).vertexes[0]
        assert vertex.name == ""
        assert vertex.digest == ""
        assert vertex.error == ""

    def test_empty_record(self):
        """Test a record with no events decodes to an empty batch."""
        assert decode_solve_status({}).is_empty()

    @pytest.mark.parametrize(
        "batch",
        [
            [],
            {"vertexes": "nope"},
            {"statuses": [{"timestamp": "2024-05-01T12:00:00Z"}]},
            {"statuses": [{"id": "x"}]},
            {"statuses": [{"id": "x", "current": "lots", "timestamp": "2024-05-01T12:00:00Z"}]},
            {"logs": [{"data": "%%%", "timestamp": "2024-05-01T12:00:00Z"}]},
            {"logs": [{"data": b64("x")}]},
        ],
    )
    def test_malformed(self, batch):
        """Test malformed records raise EventDecodeError."""
        with pytest.raises(EventDecodeError):
            decode_solve_status(batch)


@pytest.mark.unit
class TestIterSolveStatuses:
    """Test cases for stream decoding."""

    def test_lines_decoded_in_order(self):
        """Test every non-blank line yields one batch."""
        lines = [
            json.dumps({"vertexes": [{"name": "one"}]}) + "\n",
            "\n",
            json.dumps({"vertexes": [{"name": "two"}]}) + "\n",
        ]
        names = [batch.vertexes[0].name for batch in iter_solve_statuses(lines)]
        assert names == ["one", "two"]

    def test_invalid_json_reports_line(self):
        """Test the offending line number is reported."""
        lines = [json.dumps({}), "{not json"]
        with pytest.raises(EventDecodeError, match="line 2"):
            list(iter_solve_statuses(lines))
