"""
devkube: local development engine for container-based services.

This package provides the two halves of a local development loop: a build
logger that turns the build service's event stream into per-service log
files, and the lifecycle of a local multi-node Kubernetes cluster running in
Docker containers.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Exception hierarchy, error handling and input validation
- system: Cancellable command execution and process-tree termination
- buildlog: Log store, status multiplexer and event processor
- executor: Parallel node actions with shared cancellation
- cluster: Cluster health evaluation and provisioning
- cli: Command-line interface

Usage:
    From command line:
        devkube cluster check
        buildctl build ... --progress=rawjson 2>&1 | devkube buildlog --service api

    Programmatically:
        from devkube import EventProcessor, LogStore
        with EventProcessor(LogStore(Path("logs"))) as processor:
            processor.add_listener(lambda service, line: print(line, end=""))
            processor.process("api", batch)
"""

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .buildlog import EventProcessor, LogStore, StatusMultiplexer
from .cluster import ClusterHealthEvaluator, ClusterProvisioner
from .executor import NodeActionExecutor
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    BuildLogConfig,
    ClusterConfig,
    ClusterNode,
    ClusterSession,
    ClusterTopology,
    HealthReport,
    HealthStatus,
    SolveStatus,
)

# Validation utilities
from .validation import (
    DevKubeError,
    ValidationError,
)

# System utilities
from .system import run_command, terminate_process_tree

__version__ = "0.1.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "EventProcessor",
    "LogStore",
    "StatusMultiplexer",
    "ClusterHealthEvaluator",
    "ClusterProvisioner",
    "NodeActionExecutor",
    "main_cli",
    # Models
    "AppConfig",
    "BuildLogConfig",
    "ClusterConfig",
    "ClusterNode",
    "ClusterSession",
    "ClusterTopology",
    "HealthReport",
    "HealthStatus",
    "SolveStatus",
    # Validation
    "DevKubeError",
    "ValidationError",
    # System utilities
    "run_command",
    "terminate_process_tree",
]
