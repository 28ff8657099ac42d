"""
Cluster data models.

ClusterSession carries everything a provisioning call needs to know about the
cluster it acts on; it is created once by the caller and passed explicitly to
every component instead of living in a module-level global.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .config import ClusterConfig

# Labels the bootstrap tool puts on every node container
CLUSTER_LABEL = "io.x-k8s.kind.cluster"
ROLE_LABEL = "io.x-k8s.kind.role"


class NodeRole(Enum):
    """Role of a node within the cluster."""
    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


@dataclass(frozen=True)
class ClusterTopology:
    """
    Expected node layout: a single control-plane node plus `workers` workers.
    """

    workers: int = 3

    @property
    def size(self) -> int:
        return 1 + self.workers

    def roles(self) -> List[NodeRole]:
        return [NodeRole.CONTROL_PLANE] + [NodeRole.WORKER] * self.workers

    def node_names(self, cluster_name: str) -> List[str]:
        """
        Container names the bootstrap tool gives the nodes.

        The first worker carries no index, the following ones are numbered
        from 2: devkube-worker, devkube-worker2, devkube-worker3.
        """
        names = [f"{cluster_name}-control-plane"]
        for index in range(1, self.workers + 1):
            suffix = "" if index == 1 else str(index)
            names.append(f"{cluster_name}-worker{suffix}")
        return names


@dataclass
class ClusterNode:
    """
    Readiness of one node as reported by the cluster itself.

    Built fresh from a query on every health check and never stored.
    """

    name: str
    role: NodeRole
    last_transition_time: datetime
    ready: bool


@dataclass
class ClusterSession:
    """Identity of the cluster a provisioning call operates on."""

    name: str
    kubeconfig: Path
    registry: str = ""
    topology: ClusterTopology = field(default_factory=ClusterTopology)
    host_mount_path: Optional[Path] = Path("/mnt")
    freshness_window_seconds: float = 60.0

    @classmethod
    def from_config(cls, config: ClusterConfig) -> "ClusterSession":
        kubeconfig = config.kubeconfig
        if kubeconfig is None:
            kubeconfig = Path.home() / ".kube" / f"devkube-{config.name}.yaml"
        return cls(
            name=config.name,
            kubeconfig=Path(kubeconfig),
            registry=config.registry,
            topology=ClusterTopology(workers=config.workers),
            host_mount_path=config.host_mount_path,
            freshness_window_seconds=config.freshness_window_seconds,
        )

    def label_filters(self, role: Optional[NodeRole] = None) -> List[str]:
        """`docker ps --filter` arguments selecting this cluster's node containers."""
        filters = [f"label={CLUSTER_LABEL}={self.name}"]
        if role is not None:
            filters.append(f"label={ROLE_LABEL}={role.value}")
        return filters

    @property
    def expected_node_names(self) -> List[str]:
        return self.topology.node_names(self.name)


class HealthStatus(Enum):
    """Outcome of a cluster health evaluation that did not fail outright."""
    HEALTHY = "healthy"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass
class HealthReport:
    """
    Result of a health evaluation.

    NEEDS_CONFIRMATION means some nodes are not ready but changed state
    recently; the caller decides whether that is "still booting" or a reason
    to redeploy.
    """

    status: HealthStatus
    nodes: List[ClusterNode] = field(default_factory=list)
    not_ready: List[ClusterNode] = field(default_factory=list)
    message: str = ""

    @property
    def healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY
