"""
Configuration validation utilities.

This module turns the raw `[buildlog]` and `[cluster]` tables into validated
configuration dataclasses.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import BuildLogConfig, ClusterConfig
from ..validation import (
    ValidationError,
    validate_cluster_name,
    validate_positive_float,
    validate_positive_integer,
    validate_registry_address,
)

logger = logging.getLogger(__name__)


def _resolve_path(value: Any, base_dir: Optional[Path], field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value,
        )
    path = Path(value).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def validate_buildlog_config(
    buildlog_data: Dict[str, Any], base_dir: Optional[Path] = None
) -> BuildLogConfig:
    """
    Validate and create a BuildLogConfig from raw configuration data.

    Args:
        buildlog_data: Raw `[buildlog]` table
        base_dir: Directory relative log paths are resolved against

    Returns:
        Validated BuildLogConfig instance

    Raises:
        ValidationError: If validation fails
    """
    log_dir = _resolve_path(
        buildlog_data.get("log_dir", "logs"), base_dir, "buildlog.log_dir"
    )

    verbose = buildlog_data.get("verbose", False)
    if not isinstance(verbose, bool):
        raise ValidationError(
            "buildlog.verbose must be a boolean",
            field_name="buildlog.verbose",
            value=verbose,
        )

    return BuildLogConfig(log_dir=log_dir, verbose=verbose)


def validate_cluster_config(
    cluster_data: Dict[str, Any], base_dir: Optional[Path] = None
) -> ClusterConfig:
    """
    Validate and create a ClusterConfig from raw configuration data.

    Args:
        cluster_data: Raw `[cluster]` table
        base_dir: Directory a relative kubeconfig path is resolved against

    Returns:
        Validated ClusterConfig instance

    Raises:
        ValidationError: If validation fails
    """
    name = validate_cluster_name(
        cluster_data.get("name", "devkube"), field_name="cluster.name"
    )

    workers = validate_positive_integer(
        cluster_data.get("workers", 3),
        min_value=1,
        max_value=16,
        field_name="cluster.workers",
    )
    if workers != 3:
        logger.warning(
            f"cluster.workers is {workers}; the supported layout is one control-plane and 3 workers"
        )

    freshness_window = validate_positive_float(
        cluster_data.get("freshness_window_seconds", 60.0),
        min_value=1.0,
        max_value=3600.0,
        field_name="cluster.freshness_window_seconds",
    )

    host_mount_path = _resolve_path(
        cluster_data.get("host_mount_path", "/mnt"), None, "cluster.host_mount_path"
    )

    registry = validate_registry_address(
        cluster_data.get("registry", ""), field_name="cluster.registry"
    )

    kubeconfig_value = cluster_data.get("kubeconfig", "")
    kubeconfig = None
    if kubeconfig_value:
        kubeconfig = _resolve_path(kubeconfig_value, base_dir, "cluster.kubeconfig")

    return ClusterConfig(
        name=name,
        workers=workers,
        freshness_window_seconds=freshness_window,
        host_mount_path=host_mount_path,
        registry=registry,
        kubeconfig=kubeconfig,
    )
