"""
Pytest configuration and shared fixtures for the devkube test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the devkube project.
"""

import sys
import tempfile
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fixed_now():
    """A fixed aware 'now' for readiness evaluation."""
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "buildlog": {
            "log_dir": "logs",
            "verbose": False,
        },
        "cluster": {
            "name": "devkube",
            "workers": 3,
            "freshness_window_seconds": 60,
            "host_mount_path": "/mnt",
            "registry": "registry.local:5000",
            "kubeconfig": "kube/config.yaml",
        },
    }


@pytest.fixture
def session(temp_dir):
    """A cluster session with the default topology."""
    from devkube.models import ClusterSession

    return ClusterSession(
        name="devkube",
        kubeconfig=temp_dir / "kubeconfig.yaml",
        registry="registry.local:5000",
        host_mount_path=temp_dir / "mnt",
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create a temporary configuration file for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)

    return {
        "config": config_file,
        "dir": temp_dir,
    }


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def make_node(
        name: str,
        ready: bool = True,
        changed: Optional[datetime] = None,
        role: str = "worker",
    ):
        """Create a ClusterNode."""
        from devkube.models import ClusterNode, NodeRole

        return ClusterNode(
            name=name,
            role=NodeRole(role),
            last_transition_time=changed or datetime(2024, 1, 1, tzinfo=timezone.utc),
            ready=ready,
        )

    @staticmethod
    def node_list_json(nodes: List[Dict[str, Any]]) -> str:
        """Render `kubectl get nodes -o json` output for (name, ready, changed, control_plane) dicts."""
        import json

        items = []
        for node in nodes:
            labels = {"kubernetes.io/hostname": node["name"]}
            if node.get("control_plane"):
                labels["node-role.kubernetes.io/control-plane"] = ""
            items.append(
                {
                    "metadata": {"name": node["name"], "labels": labels},
                    "status": {
                        "conditions": [
                            {
                                "type": "MemoryPressure",
                                "status": "False",
                                "lastTransitionTime": "2024-01-01T00:00:00Z",
                            },
                            {
                                "type": "Ready",
                                "status": "True" if node.get("ready", True) else "False",
                                "lastTransitionTime": node.get("changed", "2024-01-01T00:00:00Z"),
                            },
                        ]
                    },
                }
            )
        return json.dumps({"apiVersion": "v1", "kind": "List", "items": items})

    @staticmethod
    def ago(now: datetime, **kwargs) -> datetime:
        return now - timedelta(**kwargs)


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    # Store original config path (default path)
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield  # Run the test

    from devkube.config import clear_config_cache, set_config_path

    clear_config_cache()

    # Always reset to original config path
    set_config_path(original_config_path)
