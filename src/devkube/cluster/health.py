"""
Cluster health evaluation.

Decides whether the local cluster is usable from two inputs: the node
containers Docker runs and the node readiness the cluster reports. The
checks run in priority order:

1. no node containers at all: the cluster was never provisioned (or Docker
   restarted since);
2. a node count or node names other than the expected topology: the cluster
   partially crashed and its containers have to be removed;
3. every node ready: healthy;
4. some nodes not ready, but each of them changed state within the freshness
   window: the cluster is probably still starting, and the caller has to
   confirm whether to redeploy;
5. some nodes not ready for longer than the window: broken.

The freshness window only separates "still booting" from "broken"; it is not
a timeout and nothing here waits or retries.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from ..models.cluster import ClusterNode, ClusterSession, HealthReport, HealthStatus
from ..validation import (
    ClusterNotProvisionedError,
    ClusterNotReadyError,
    ClusterTopologyError,
    RedeployRequestedError,
)

logger = logging.getLogger(__name__)


class ClusterHealthEvaluator:
    """
    Evaluates cluster health against a session's expected topology.

    Args:
        session: Cluster whose topology and freshness window apply
    """

    def __init__(self, session: ClusterSession):
        self.session = session
        self.freshness_window = timedelta(seconds=session.freshness_window_seconds)

    @property
    def expected_names(self) -> List[str]:
        return self.session.expected_node_names

    def check_topology(self, container_names: Sequence[str]) -> None:
        """
        Validate the node containers against the expected topology.

        Raises:
            ClusterNotProvisionedError: If no node container exists
            ClusterTopologyError: If the node set differs from the expected one
        """
        expected = self.expected_names
        if not container_names:
            raise ClusterNotProvisionedError(
                "no nodes were running, the cluster has to be provisioned once per docker engine restart"
            )

        if len(container_names) != len(expected):
            raise ClusterTopologyError(
                f"some nodes have been removed or crashed: {len(container_names)}/{len(expected)} were running. "
                f"Remove the remaining containers with 'docker rm -f {' '.join(sorted(container_names))}' "
                "and provision the cluster again"
            )

        missing = sorted(set(expected) - set(container_names))
        if missing:
            raise ClusterTopologyError(
                f"some nodes were not running while others were (missing {', '.join(missing)}), "
                "try deleting your cluster containers with docker rm"
            )

    def _is_fresh(self, node: ClusterNode, now: datetime) -> bool:
        return node.last_transition_time + self.freshness_window > now

    def evaluate_readiness(
        self, nodes: Sequence[ClusterNode], now: Optional[datetime] = None
    ) -> HealthReport:
        """
        Judge node readiness.

        Returns:
            A HEALTHY report, or NEEDS_CONFIRMATION when the not-ready nodes
            all changed state within the freshness window

        Raises:
            ClusterTopologyError: If the cluster reports a different node count
            ClusterNotReadyError: If nodes have been not ready for too long
        """
        now = now or datetime.now(timezone.utc)
        expected = self.session.topology
        if len(nodes) != expected.size:
            raise ClusterTopologyError(
                f"some nodes were not running, we were expecting {expected.size} "
                f"({expected.workers} workers + one control-plane node), the cluster reports {len(nodes)}"
            )

        not_ready = [node for node in nodes if not node.ready]
        if not not_ready:
            logger.info(f"All {len(nodes)} nodes of {self.session.name} are ready")
            return HealthReport(status=HealthStatus.HEALTHY, nodes=list(nodes))

        names = ", ".join(node.name for node in not_ready)
        if all(self._is_fresh(node, now) for node in not_ready):
            logger.info(f"Nodes {names} are not ready yet but changed state recently")
            return HealthReport(
                status=HealthStatus.NEEDS_CONFIRMATION,
                nodes=list(nodes),
                not_ready=not_ready,
                message=f"nodes {names} are not ready but changed state within the last "
                        f"{int(self.freshness_window.total_seconds())} seconds",
            )

        raise ClusterNotReadyError(
            f"cluster is not ready (nodes {names}), and has not been for over "
            f"{int(self.freshness_window.total_seconds())} seconds"
        )

    def evaluate(
        self,
        container_names: Sequence[str],
        nodes: Sequence[ClusterNode],
        now: Optional[datetime] = None,
    ) -> HealthReport:
        """Run the topology check followed by the readiness check."""
        self.check_topology(container_names)
        return self.evaluate_readiness(nodes, now=now)

    @staticmethod
    def resolve(report: HealthReport, redeploy: bool) -> HealthReport:
        """
        Settle a NEEDS_CONFIRMATION report with the operator's answer.

        Declining a redeploy treats the cluster as healthy: recently changed
        nodes are expected while a cluster starts.

        Raises:
            RedeployRequestedError: If the operator asked to redeploy
        """
        if report.healthy:
            return report
        if redeploy:
            raise RedeployRequestedError("some nodes weren't ready, and you chose to redeploy")
        logger.info("Proceeding with a cluster that is still starting up")
        return HealthReport(
            status=HealthStatus.HEALTHY,
            nodes=report.nodes,
            not_ready=report.not_ready,
            message=report.message,
        )
