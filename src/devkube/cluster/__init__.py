"""
Cluster lifecycle for the devkube package.

This module provisions and checks the local multi-node Kubernetes cluster
that runs in Docker containers:

- nodes: node container listing and readiness queries
- health: topology and readiness evaluation
- bootstrap: cluster creation through kind
- provisioner: start, registry patching and health check operations
"""

from .bootstrap import ClusterBootstrap, KindBootstrap, Mount, NodeSpec, build_cluster_config
from .health import ClusterHealthEvaluator
from .nodes import list_node_containers, parse_node_list, query_node_readiness
from .provisioner import ClusterProvisioner, registry_patch_script

__all__ = [
    # Bootstrap
    "ClusterBootstrap",
    "KindBootstrap",
    "Mount",
    "NodeSpec",
    "build_cluster_config",
    # Health
    "ClusterHealthEvaluator",
    # Queries
    "list_node_containers",
    "parse_node_list",
    "query_node_readiness",
    # Operations
    "ClusterProvisioner",
    "registry_patch_script",
]
