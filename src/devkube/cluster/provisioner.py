"""
Local cluster lifecycle: provisioning, registry patching and health checks.

ClusterProvisioner ties the node queries, the health evaluator and the
parallel node executor together for one ClusterSession. Every operation that
touches several node containers goes through NodeActionExecutor, so a single
failing node aborts the rest and nothing is left running when the operation
returns.
"""

import asyncio
import logging
import shlex
from pathlib import Path
from typing import Callable, List, Optional

from ..executor import NodeActionExecutor
from ..models.cluster import ClusterSession, HealthReport
from ..system.commands import CommandResult, run_command
from ..validation import (
    ClusterNotProvisionedError,
    ErrorSeverity,
    ProvisionError,
    RemoteActionError,
    handle_error,
)
from .bootstrap import ClusterBootstrap, KindBootstrap, Mount, NodeSpec
from .health import ClusterHealthEvaluator
from .nodes import list_node_containers, query_node_readiness

logger = logging.getLogger(__name__)

HOST_HOME_MOUNT = "/hosthome"
CONTAINERD_CONFIG = "/etc/containerd/config.toml"
_MIRRORS_SECTION = 'plugins."io.containerd.grpc.v1.cri".registry.mirrors'

ConfirmCallback = Callable[[HealthReport], bool]
ExecutorFactory = Callable[[str], NodeActionExecutor]


def registry_patch_script(registry: str) -> str:
    """
    Shell script adding a plain-HTTP mirror for `registry` to containerd.

    The script does nothing when the registry already appears in the
    configuration, so running it twice leaves the node unchanged.
    """
    section = _MIRRORS_SECTION.replace(".", r"\.")
    quoted = shlex.quote(registry)
    return (
        f"grep -qF {quoted} {CONTAINERD_CONFIG} || {{ "
        f"sed -i"
        f" -e '/\\[{section}\\]/a\\' "
        f"-e '        [{_MIRRORS_SECTION}.\"{registry}\"]\\' "
        f"-e '          endpoint = [\"http://{registry}\"]' "
        f"{CONTAINERD_CONFIG} && systemctl restart containerd; }}"
    )


class ClusterProvisioner:
    """
    Lifecycle operations on the cluster described by a session.

    Args:
        session: Cluster to operate on
        bootstrap: Facility creating the cluster, kind by default
        executor_factory: Builds the executor for a named node action
    """

    def __init__(
        self,
        session: ClusterSession,
        bootstrap: Optional[ClusterBootstrap] = None,
        executor_factory: ExecutorFactory = NodeActionExecutor,
    ):
        self.session = session
        self.bootstrap = bootstrap or KindBootstrap()
        self.executor_factory = executor_factory
        self.evaluator = ClusterHealthEvaluator(session)

    async def delete_cluster_containers(self) -> List[str]:
        """
        Force-remove every node container of the cluster, in parallel.

        Returns:
            Names of the removed containers

        Raises:
            ProvisionError: If a container could not be removed
        """
        names = await list_node_containers(self.session)
        if not names:
            logger.info(f"No leftover containers for cluster {self.session.name}")
            return []

        async def remove(node: str) -> CommandResult:
            result = await run_command(["docker", "rm", "-f", node], name=f"docker rm {node}")
            return result.check(node)

        try:
            await self.executor_factory("docker rm").run(names, remove)
        except RemoteActionError as e:
            raise ProvisionError(
                f"could not delete existing containers to run cluster setup: {e}. "
                "Is the docker engine running?"
            ) from e

        logger.info(f"Removed {len(names)} containers of cluster {self.session.name}")
        return names

    def node_mounts(self) -> List[Mount]:
        """Read-only bind mounts every node gets."""
        mounts = [Mount(container_path=HOST_HOME_MOUNT, host_path=Path.home())]
        host_path = self.session.host_mount_path
        if host_path is not None and Path(host_path).exists():
            mounts.append(Mount(container_path=str(host_path), host_path=Path(host_path)))
        elif host_path is not None:
            logger.debug(f"Host mount path {host_path} does not exist, not mounting it")
        return mounts

    def node_specs(self) -> List[NodeSpec]:
        """One control-plane node followed by the configured workers."""
        mounts = self.node_mounts()
        return [
            NodeSpec(role=role, extra_mounts=list(mounts))
            for role in self.session.topology.roles()
        ]

    async def start_cluster(self) -> None:
        """
        Provision the cluster from scratch.

        Raises:
            ProvisionError: If leftover containers cannot be removed or the
                bootstrap fails
        """
        logger.info(f"Starting cluster {self.session.name}")
        await self.delete_cluster_containers()
        specs = self.node_specs()
        await self.bootstrap.create(self.session, specs)
        if self.session.registry:
            await self.patch_registry_containers()

    async def patch_registry_containers(self, registry: Optional[str] = None) -> None:
        """
        Make every node trust a plain-HTTP registry.

        Args:
            registry: Registry address, defaults to the session's

        Raises:
            ProvisionError: If no registry is configured
            ClusterNotProvisionedError: If the cluster has no node containers
            RemoteActionError: If patching failed on a node
        """
        registry = registry or self.session.registry
        if not registry:
            raise ProvisionError("no registry address configured to patch the nodes with")

        names = await list_node_containers(self.session)
        if not names:
            raise ClusterNotProvisionedError(
                f"cluster {self.session.name} has no nodes to patch, run the cluster start first"
            )
        script = registry_patch_script(registry)

        async def patch(node: str) -> CommandResult:
            result = await run_command(
                ["docker", "exec", node, "bash", "-c", script],
                name=f"patch registry on {node}",
            )
            return result.check(node)

        await self.executor_factory("registry patch").run(names, patch)
        logger.info(f"Nodes of {self.session.name} now pull from {registry}")

    async def check_cluster(self, confirm: Optional[ConfirmCallback] = None) -> HealthReport:
        """
        Verify the cluster is usable.

        Args:
            confirm: Asked whether to redeploy when some nodes are still
                starting; runs in a worker thread. Without it the answer is no.

        Returns:
            A HEALTHY report

        Raises:
            ClusterNotProvisionedError: If no node container exists
            ClusterTopologyError: If the node layout is wrong
            ClusterNotReadyError: If nodes have been not ready for too long
            RedeployRequestedError: If `confirm` asked for a redeploy
        """
        containers = await list_node_containers(self.session)
        self.evaluator.check_topology(containers)

        nodes = await query_node_readiness(self.session)
        report = self.evaluator.evaluate_readiness(nodes)
        if report.healthy:
            return report

        redeploy = False
        if confirm is not None:
            loop = asyncio.get_running_loop()
            try:
                redeploy = await loop.run_in_executor(None, confirm, report)
            except (EOFError, OSError) as e:
                handle_error(
                    error=e,
                    context="asking whether to redeploy",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )
                redeploy = False
        return self.evaluator.resolve(report, bool(redeploy))
