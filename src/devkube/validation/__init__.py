"""
Validation and error handling for the devkube package.

This module provides the exception hierarchy, the shared error handling
helper and the input validators used by the configuration layer.
"""

from .exceptions import (
    ClusterNotProvisionedError,
    ClusterNotReadyError,
    ClusterProtocolError,
    ClusterTopologyError,
    DevKubeError,
    ErrorSeverity,
    EventDecodeError,
    LogWriteError,
    ProvisionError,
    RedeployRequestedError,
    RemoteActionError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_file_error,
    handle_subprocess_error,
)

from .validators import (
    validate_cluster_name,
    validate_positive_float,
    validate_positive_integer,
    validate_registry_address,
    validate_service_name,
)

__all__ = [
    # Exceptions
    "DevKubeError",
    "ValidationError",
    "LogWriteError",
    "EventDecodeError",
    "ClusterProtocolError",
    "ClusterTopologyError",
    "ClusterNotProvisionedError",
    "ClusterNotReadyError",
    "RedeployRequestedError",
    "ProvisionError",
    "RemoteActionError",
    # Error handling
    "ErrorSeverity",
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_subprocess_error",
    "handle_cli_error",
    # Validators
    "validate_cluster_name",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_registry_address",
    "validate_service_name",
]
