"""
Simplified validation functions.

This module provides the validation functions used by the configuration layer
and by components that turn caller-supplied names into file or container names.
"""

import re
from typing import Any, Optional

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is a positive integer.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a positive float.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_cluster_name(name: Any, field_name: str = "cluster_name") -> str:
    """
    Validate a cluster name.

    Node containers are named after the cluster, so the name must be usable
    as a container name prefix and as a label value.

    Raises:
        ValidationError: If name is invalid
    """
    if not name or not isinstance(name, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=name
        )

    if not re.match(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$', name):
        raise ValidationError(
            f"{field_name} must contain only lowercase alphanumeric characters and hyphens: {name}",
            field_name=field_name,
            value=name
        )

    return name


def validate_service_name(name: Any, field_name: str = "service") -> str:
    """
    Validate a service name that becomes a log file name.

    Raises:
        ValidationError: If name is empty or would escape the log directory
    """
    if not name or not isinstance(name, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=name
        )

    if not re.match(r'^[A-Za-z0-9_.-]+$', name) or name in (".", ".."):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, dots, underscores, and hyphens: {name}",
            field_name=field_name,
            value=name
        )

    return name


def validate_registry_address(address: Any, field_name: str = "registry") -> str:
    """
    Validate a registry address of the form host[:port].

    An empty string is accepted and means "no registry configured".
    """
    if address is None:
        return ""
    if not isinstance(address, str):
        raise ValidationError(
            f"{field_name} must be a string",
            field_name=field_name,
            value=address
        )
    if address and not re.match(r'^[A-Za-z0-9.-]+(:[0-9]{1,5})?$', address):
        raise ValidationError(
            f"{field_name} must look like host or host:port, got {address}",
            field_name=field_name,
            value=address
        )
    return address
