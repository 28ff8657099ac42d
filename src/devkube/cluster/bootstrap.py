"""
Cluster bootstrap facility.

The actual materialisation of a cluster (node images, kubeadm, networking) is
delegated to an external tool. ClusterBootstrap is the seam the provisioner
talks to; KindBootstrap drives `kind create cluster` with a generated cluster
configuration written to a temporary YAML file.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..models.cluster import ClusterSession, NodeRole
from ..system.commands import run_command
from ..validation import ProvisionError

logger = logging.getLogger(__name__)

KIND_API_VERSION = "kind.x-k8s.io/v1alpha4"


@dataclass
class Mount:
    """A host path bind-mounted into a node container."""

    container_path: str
    host_path: Path
    read_only: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "containerPath": self.container_path,
            "hostPath": str(self.host_path),
            "readOnly": self.read_only,
        }


@dataclass
class NodeSpec:
    """One node of the cluster to create."""

    role: NodeRole
    extra_mounts: List[Mount] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "extraMounts": [mount.to_dict() for mount in self.extra_mounts],
        }


def build_cluster_config(nodes: List[NodeSpec]) -> Dict[str, Any]:
    """The kind cluster configuration document for a list of nodes."""
    return {
        "kind": "Cluster",
        "apiVersion": KIND_API_VERSION,
        "nodes": [node.to_dict() for node in nodes],
    }


class ClusterBootstrap(ABC):
    """Creates a cluster from a node topology."""

    @abstractmethod
    async def create(self, session: ClusterSession, nodes: List[NodeSpec]) -> None:
        """
        Materialise the cluster.

        Raises:
            ProvisionError: If the cluster could not be created
        """


class KindBootstrap(ClusterBootstrap):
    """
    Bootstrap through the `kind` command line tool.

    Args:
        kind_binary: Name or path of the kind executable
    """

    def __init__(self, kind_binary: str = "kind"):
        self.kind_binary = kind_binary

    @staticmethod
    def write_config(session: ClusterSession, config: Dict[str, Any]) -> str:
        """
        Write the cluster configuration to a temporary YAML file.

        The caller owns the returned path and must unlink it.

        Raises:
            ProvisionError: If the file could not be written
        """
        try:
            session.kubeconfig.parent.mkdir(parents=True, exist_ok=True)
            fd, config_path = tempfile.mkstemp(prefix=f"{session.name}-", suffix=".yaml")
        except OSError as e:
            raise ProvisionError(f"could not write the cluster configuration: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            os.unlink(config_path)
            raise ProvisionError(f"could not write the cluster configuration: {e}") from e
        return config_path

    async def create(self, session: ClusterSession, nodes: List[NodeSpec]) -> None:
        config_path = self.write_config(session, build_cluster_config(nodes))

        logger.info(f"Creating cluster {session.name} with {len(nodes)} nodes")
        try:
            result = await run_command(
                [
                    self.kind_binary,
                    "create",
                    "cluster",
                    "--name",
                    session.name,
                    "--config",
                    config_path,
                    "--kubeconfig",
                    str(session.kubeconfig),
                ],
                name="kind create cluster",
            )
        finally:
            os.unlink(config_path)

        if not result.ok:
            raise ProvisionError(
                f"could not create cluster {session.name}: {result.stderr.strip() or result.stdout.strip()}"
            )
        logger.info(f"Cluster {session.name} created, kubeconfig at {session.kubeconfig}")
