"""
Configuration data models.

This module contains the configuration structures for the build logger and
the local cluster, loaded from `config.toml`.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class BuildLogConfig:
    """
    Configuration for the build logger, loaded from the `[buildlog]` table.
    """

    # Directory receiving one <service>.log file per service.
    log_dir: Path
    # Dump every raw build event into the service log as well.
    verbose: bool = False


@dataclass
class ClusterConfig:
    """
    Configuration for the local cluster, loaded from the `[cluster]` table.
    """

    # Cluster name; node containers are named <name>-control-plane, <name>-worker, ...
    name: str = "devkube"
    # Number of worker nodes next to the single control-plane node.
    workers: int = 3
    # Readiness transitions newer than this are treated as "still starting".
    freshness_window_seconds: float = 60.0
    # Host path bind-mounted read-only into every node when it exists.
    host_mount_path: Path = Path("/mnt")
    # Registry the nodes are told to pull from over plain HTTP. Empty disables patching.
    registry: str = ""
    # Kubeconfig written by the bootstrap step. None selects ~/.kube/devkube-<name>.yaml.
    kubeconfig: Optional[Path] = None


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    buildlog: BuildLogConfig
    cluster: ClusterConfig
