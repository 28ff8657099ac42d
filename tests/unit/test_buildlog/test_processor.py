"""
Unit tests for the build event processor.

Tests vertex filtering and formatting, status routing, log lines,
verbose dumps and listener notification.
"""

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devkube.buildlog import EventProcessor, ListenerRegistry, LogStore
from devkube.buildlog.log_store import format_line
from devkube.models import BuildLogConfig, LogLineEvent, SolveStatus, StatusEvent, VertexEvent
from devkube.validation import LogWriteError

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class Recorder:
    """Listener collecting every notification."""

    def __init__(self):
        self.calls = []

    def __call__(self, service, line):
        self.calls.append((service, line))

    @property
    def lines(self):
        return [line for _, line in self.calls]


@pytest.fixture
def processor(temp_dir):
    with EventProcessor(LogStore(temp_dir), clock=lambda: NOW) as event_processor:
        yield event_processor


def log_content(processor, service="api"):
    return processor.store.log_path(service).read_text()


@pytest.mark.unit
class TestVertexHandling:
    """Test cases for vertex events."""

    def test_vertex_logged(self, processor):
        """Test a regular vertex becomes a permanent line with its name."""
        processor.process("api", SolveStatus(vertexes=[VertexEvent(name="[1/3] FROM python:3.12")]))
        assert log_content(processor) == format_line(NOW, "[1/3] FROM python:3.12") + "\n"

    def test_internal_vertex_skipped(self, processor):
        """Test internal bookkeeping vertexes are not logged."""
        processor.process(
            "api",
            SolveStatus(vertexes=[
                VertexEvent(name="[internal] load build context"),
                VertexEvent(name="[2/3] RUN make"),
            ]),
        )
        content = log_content(processor)
        assert "[internal]" not in content
        assert "[2/3] RUN make" in content

    def test_cached_vertex_prefixed(self, processor):
        """Test cached vertexes are marked as such."""
        processor.process("api", SolveStatus(vertexes=[VertexEvent(name="[2/3] RUN make", cached=True)]))
        assert log_content(processor).endswith("] cached: [2/3] RUN make\n")

    def test_error_vertex_logs_failure_first(self, processor):
        """Test a failed vertex logs the error with its layer id, then its name."""
        vertex = VertexEvent(name="[3/3] RUN false", digest="sha256:feed", error="exit code: 1")
        processor.process("api", SolveStatus(vertexes=[vertex]))

        lines = log_content(processor).splitlines()
        assert lines == [
            format_line(NOW, "exit code: 1: LAYERID=sha256:feed"),
            format_line(NOW, "[3/3] RUN false"),
        ]


@pytest.mark.unit
class TestStatusAndLogs:
    """Test cases for status and log line events."""

    def test_status_routed_to_block(self, processor):
        """Test status events update the service's status block."""
        processor.process("api", SolveStatus(statuses=[StatusEvent(id="abc", timestamp=NOW, current=50, total=100)]))
        assert processor.store.status_block("api").endswith("abc 50.00B/100.00B\n")
        assert [s.id for s in processor.statuses.active("api")] == ["abc"]

    def test_log_line_uses_event_timestamp(self, processor):
        """Test raw log output keeps its own timestamp and loses its newline."""
        at = NOW - timedelta(minutes=5)
        processor.process("api", SolveStatus(logs=[LogLineEvent(data="gcc -c main.c\n", timestamp=at)]))
        assert log_content(processor) == format_line(at, "gcc -c main.c") + "\n"

    def test_processing_order(self, processor):
        """Test vertexes are written before statuses and logs of the same batch."""
        processor.process(
            "api",
            SolveStatus(
                vertexes=[VertexEvent(name="step")],
                statuses=[StatusEvent(id="abc", timestamp=NOW, current=1, completed=True)],
                logs=[LogLineEvent(data="output", timestamp=NOW)],
            ),
        )
        lines = [line.split("] ", 1)[1] for line in log_content(processor).splitlines()]
        assert lines == ["step", "abc 1.00B", "output"]

    def test_close_drops_status_state(self, temp_dir):
        """Test closing the processor releases in-flight and completed statuses."""
        processor = EventProcessor(LogStore(temp_dir), clock=lambda: NOW)
        processor.process("api", SolveStatus(statuses=[
            StatusEvent(id="abc", timestamp=NOW, current=1, total=2),
            StatusEvent(id="def", timestamp=NOW, current=2, total=2, completed=True),
        ]))
        assert [s.id for s in processor.statuses.active("api")] == ["abc"]

        processor.close()
        assert processor.statuses.active("api") == []

    def test_empty_batch_writes_nothing(self, processor):
        """Test an empty batch creates no file."""
        processor.process("api", SolveStatus())
        assert not processor.store.log_path("api").exists()


@pytest.mark.unit
class TestVerboseDump:
    """Test cases for verbose mode."""

    def test_verbose_dumps_raw_events(self, temp_dir):
        """Test verbose mode logs a dump of each event before handling it."""
        with EventProcessor(LogStore(temp_dir), verbose=True, clock=lambda: NOW) as processor:
            processor.process(
                "api",
                SolveStatus(
                    vertexes=[VertexEvent(name="[internal] load", digest="sha256:aa")],
                    statuses=[StatusEvent(id="abc", timestamp=NOW, current=1, total=2, name="pull", vertex="v1")],
                    logs=[LogLineEvent(data="out", timestamp=NOW, vertex="v1")],
                ),
            )
            content = log_content(processor)

        assert "Vertex: '[internal] load',  '',  'sha256:aa'" in content
        assert "Status: 'pull'.  'abc',  'v1',  (curr=1, total=2)" in content
        assert "Log: 'out',  'v1'" in content

    def test_quiet_by_default(self, processor):
        """Test no dumps are written without verbose mode."""
        processor.process("api", SolveStatus(vertexes=[VertexEvent(name="step")]))
        assert "Vertex:" not in log_content(processor)


@pytest.mark.unit
class TestListeners:
    """Test cases for listener notification."""

    def test_listener_receives_lines(self, processor):
        """Test listeners get each line without timestamp, newline terminated."""
        recorder = Recorder()
        processor.add_listener(recorder)
        processor.process(
            "api",
            SolveStatus(
                vertexes=[VertexEvent(name="step")],
                statuses=[StatusEvent(id="abc", timestamp=NOW, current=50, total=100)],
            ),
        )
        assert recorder.calls == [("api", "step\n"), ("api", "abc 50.00B/100.00B\n")]

    def test_completion_notifies_once(self, processor):
        """Test a completed status produces exactly one notification."""
        recorder = Recorder()
        processor.add_listener(recorder)
        processor.process("api", SolveStatus(statuses=[StatusEvent(id="abc", timestamp=NOW, current=100, total=100, completed=True)]))
        assert recorder.lines == ["abc 100.00B/100.00B\n"]

    def test_unsubscribe(self, processor):
        """Test a removed listener is not called anymore."""
        recorder = Recorder()
        remove = processor.add_listener(recorder)
        processor.log("api", NOW, "first")
        remove()
        processor.log("api", NOW, "second")
        assert recorder.lines == ["first\n"]

    def test_failing_listener_does_not_stop_processing(self, processor):
        """Test an exception in one listener neither aborts the write nor the other listeners."""
        def broken(service, line):
            raise RuntimeError("listener bug")

        recorder = Recorder()
        processor.add_listener(broken)
        processor.add_listener(recorder)
        processor.log("api", NOW, "line")

        assert recorder.lines == ["line\n"]
        assert log_content(processor).endswith("] line\n")

    def test_listener_can_write_to_other_service(self, processor):
        """Test listeners run outside the store locks and may log themselves."""
        def mirror(service, line):
            if service == "api":
                processor.log("mirror", NOW, line)

        processor.add_listener(mirror)
        processor.log("api", NOW, "hello")
        assert log_content(processor, "mirror").endswith("] hello\n")

    def test_registry_is_thread_safe(self):
        """Test concurrent registration keeps every listener."""
        registry = ListenerRegistry()
        threads = [
            threading.Thread(target=lambda: [registry.add(Recorder()) for _ in range(50)])
            for _ in range(4)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(registry) == 200


@pytest.mark.unit
class TestWriteFailures:
    """Test cases for write failures."""

    def test_write_failure_names_service(self, temp_dir):
        """Test an unwritable log raises LogWriteError mentioning the service."""
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with EventProcessor(LogStore(blocker / "logs"), clock=lambda: NOW) as processor:
            with pytest.raises(LogWriteError, match="Could not write to api's logs"):
                processor.process("api", SolveStatus(vertexes=[VertexEvent(name="step")]))

    def test_error_vertex_failure_message(self, temp_dir):
        """Test a failure while logging an error vertex says so."""
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with EventProcessor(LogStore(blocker / "logs"), clock=lambda: NOW) as processor:
            with pytest.raises(LogWriteError, match="Could not log failure to api's logs"):
                processor.process("api", SolveStatus(vertexes=[VertexEvent(name="s", error="boom")]))

    def test_status_failure_message(self, temp_dir):
        """Test a failure while writing a status says so."""
        blocker = temp_dir / "file"
        blocker.write_text("x")
        with EventProcessor(LogStore(blocker / "logs"), clock=lambda: NOW) as processor:
            with pytest.raises(LogWriteError, match="Could not write status to api's logs"):
                processor.process("api", SolveStatus(statuses=[StatusEvent(id="a", timestamp=NOW)]))


@pytest.mark.unit
def test_from_config(temp_dir):
    """Test a processor built from configuration uses its directory and verbosity."""
    processor = EventProcessor.from_config(BuildLogConfig(log_dir=temp_dir / "logs", verbose=True))
    try:
        assert processor.verbose is True
        assert processor.store.log_directory == Path(temp_dir / "logs")
    finally:
        processor.close()
