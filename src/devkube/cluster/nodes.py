"""
Node listing queries.

Two views of the cluster's nodes exist: the node containers Docker runs
(found through the labels the bootstrap tool puts on them) and the nodes the
cluster itself reports, which carry readiness. The first tells us whether the
topology is intact, the second whether it is usable.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from ..models.cluster import ClusterNode, ClusterSession, NodeRole
from ..system.commands import run_command
from ..timestamps import parse_rfc3339
from ..validation import ClusterNotReadyError, ClusterProtocolError, ProvisionError

logger = logging.getLogger(__name__)

_CONTROL_PLANE_LABELS = (
    "node-role.kubernetes.io/control-plane",
    "node-role.kubernetes.io/master",
)


async def list_node_containers(
    session: ClusterSession, role: Optional[NodeRole] = None
) -> List[str]:
    """
    Names of the node containers of a cluster, running or not.

    Args:
        session: Cluster to look for
        role: Restrict the listing to one node role

    Raises:
        ProvisionError: If Docker cannot be queried
    """
    argv = ["docker", "ps", "--all", "--format", "{{.Names}}"]
    for label_filter in session.label_filters(role):
        argv += ["--filter", label_filter]

    result = await run_command(argv, name="docker ps")
    if not result.ok:
        raise ProvisionError(
            f"could not list the nodes of cluster {session.name}: {result.stderr.strip()}. "
            "Is the docker engine running?"
        )

    names = sorted(line.strip() for line in result.stdout.splitlines() if line.strip())
    logger.debug(f"Found {len(names)} node containers for {session.name}: {names}")
    return names


def _node_role(labels: Dict[str, Any]) -> NodeRole:
    if any(label in labels for label in _CONTROL_PLANE_LABELS):
        return NodeRole.CONTROL_PLANE
    return NodeRole.WORKER


def _readiness_condition(conditions: List[Dict[str, Any]]) -> Dict[str, Any]:
    for condition in conditions:
        if condition.get("type") == "Ready":
            return condition
    return conditions[-1]


def parse_node_list(output: str) -> List[ClusterNode]:
    """
    Parse `kubectl get nodes -o json` output.

    Raises:
        ClusterProtocolError: If the output is not a node list we understand
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise ClusterProtocolError(
            f"got invalid kubernetes output while checking if cluster was running: {output!r}"
        ) from e

    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ClusterProtocolError(f"kubernetes node list has no items: {output!r}")

    nodes = []
    for item in items:
        try:
            metadata = item["metadata"]
            conditions = item["status"]["conditions"]
            if not conditions:
                raise ClusterProtocolError(f"node {metadata.get('name')} reports no conditions")
            condition = _readiness_condition(conditions)
            nodes.append(
                ClusterNode(
                    name=metadata["name"],
                    role=_node_role(metadata.get("labels") or {}),
                    last_transition_time=parse_rfc3339(condition["lastTransitionTime"]),
                    ready=str(condition.get("status", "")).strip() == "True",
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ClusterProtocolError(
                f"got invalid kubernetes output while checking how long cluster has been running: {e}"
            ) from e

    return nodes


async def query_node_readiness(session: ClusterSession) -> List[ClusterNode]:
    """
    Ask the cluster for its nodes and their readiness.

    Raises:
        ClusterNotReadyError: If the cluster's API cannot be reached
        ClusterProtocolError: If the answer is malformed
    """
    argv = [
        "kubectl",
        f"--kubeconfig={session.kubeconfig}",
        "get",
        "nodes",
        "--output=json",
    ]
    result = await run_command(argv, name="kubectl get nodes")
    if not result.ok:
        raise ClusterNotReadyError(
            f"could not check if the cluster was running: {result.stderr.strip()}"
        )
    return parse_node_list(result.stdout)
