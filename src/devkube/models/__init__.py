"""
Data models for the devkube engine.

Configuration Models:
- Build logger and cluster settings loaded from config.toml

Build Event Models:
- Vertex, status and log-line records streamed by the build service

Cluster Models:
- Session identity, expected topology, node readiness and health reports
"""

from .config import AppConfig, BuildLogConfig, ClusterConfig
from .events import LogLineEvent, SolveStatus, StatusEvent, VertexEvent
from .cluster import (
    ClusterNode,
    ClusterSession,
    ClusterTopology,
    HealthReport,
    HealthStatus,
    NodeRole,
)

__all__ = [
    # Configuration
    "AppConfig",
    "BuildLogConfig",
    "ClusterConfig",
    # Build events
    "LogLineEvent",
    "SolveStatus",
    "StatusEvent",
    "VertexEvent",
    # Cluster
    "ClusterNode",
    "ClusterSession",
    "ClusterTopology",
    "HealthReport",
    "HealthStatus",
    "NodeRole",
]
