"""
Tests for the devkube command-line interface.
"""

import io
import json
from unittest.mock import AsyncMock, patch

import pytest

from devkube.cli.main import build_parser, main_cli, prompt_redeploy, run_buildlog
from devkube.config import get_config, set_config_path
from devkube.models import HealthReport, HealthStatus
from devkube.validation import ClusterNotProvisionedError


@pytest.fixture
def app_config(config_files):
    set_config_path(config_files["config"])
    return get_config()


@pytest.mark.unit
class TestPromptRedeploy:
    """Test cases for the redeploy question."""

    report = HealthReport(status=HealthStatus.NEEDS_CONFIRMATION, message="nodes devkube-worker are not ready")

    @pytest.mark.parametrize("answer,expected", [("y", True), ("YES", True), ("n", False), ("", False)])
    def test_answers(self, answer, expected):
        out = io.StringIO()
        assert prompt_redeploy(self.report, read=lambda prompt: answer, out=out) is expected
        assert "devkube-worker" in out.getvalue()

    def test_asks_again_on_unknown_answer(self):
        """Test unclear answers repeat the question."""
        answers = iter(["maybe", "y"])
        out = io.StringIO()
        assert prompt_redeploy(self.report, read=lambda prompt: next(answers), out=out) is True
        assert "Please answer" in out.getvalue()


@pytest.mark.unit
class TestParser:
    """Test cases for argument parsing."""

    def test_cluster_commands(self):
        args = build_parser().parse_args(["cluster", "patch-registry", "--registry", "reg:5000"])
        assert args.command == "cluster"
        assert args.action == "patch-registry"
        assert args.registry == "reg:5000"

    def test_buildlog_requires_service(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["buildlog"])


@pytest.mark.unit
class TestBuildLogCommand:
    """Test cases for the buildlog command."""

    def test_stream_logged_and_echoed(self, app_config):
        """Test a raw JSON stream is written to the service log and echoed."""
        stream = io.StringIO(
            json.dumps({"vertexes": [{"name": "[1/2] FROM alpine"}, {"name": "[internal] load"}]}) + "\n"
            + json.dumps({"statuses": [{"id": "abc", "current": 5, "total": 10, "timestamp": "2024-05-01T12:00:00Z"}]}) + "\n"
        )
        out = io.StringIO()

        processed = run_buildlog(app_config, "api", verbose=False, stream=stream, out=out)

        assert processed == 2
        assert out.getvalue() == "[1/2] FROM alpine\nabc 5.00B/10.00B\n"
        content = (app_config.buildlog.log_dir / "api.log").read_text()
        assert "[1/2] FROM alpine" in content
        assert content.endswith("abc 5.00B/10.00B\n")

    def test_invalid_service_exits(self, config_files):
        """Test an invalid service name exits with a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--config", str(config_files["config"]), "buildlog", "--service", "../x"])
        assert exc_info.value.code == 2


@pytest.mark.unit
class TestClusterCommand:
    """Test cases for the cluster command."""

    def test_failure_exits_nonzero(self, config_files):
        """Test a failed cluster check exits with status 1."""
        with patch(
            "devkube.cli.main.ClusterProvisioner.check_cluster",
            AsyncMock(side_effect=ClusterNotProvisionedError("no nodes were running")),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main_cli(["--config", str(config_files["config"]), "cluster", "check"])
        assert exc_info.value.code == 1

    def test_missing_config_exits(self, temp_dir):
        """Test a missing configuration file exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--config", str(temp_dir / "absent.toml"), "cluster", "check"])
        assert exc_info.value.code == 1
