"""
Exception hierarchy and error handling helpers.

Every failure the engine reports derives from DevKubeError so callers can
catch the whole family at once. The handle_error helper gives the rest of the
package one consistent way to log an error at a chosen severity and optionally
re-raise it.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DevKubeError(Exception):
    """Base class for all errors raised by the devkube engine."""


class ValidationError(DevKubeError):
    """
    Exception raised when configuration validation fails.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class LogWriteError(DevKubeError):
    """A service log file could not be created or written."""

    def __init__(self, message: str, service: Optional[str] = None):
        super().__init__(message)
        self.service = service


class EventDecodeError(DevKubeError):
    """The build service emitted a progress record we cannot understand."""


class ClusterProtocolError(DevKubeError):
    """
    Output of a cluster query was malformed.

    This usually means the installed kubectl/kind/docker speak a format this
    version does not support.
    """


class ClusterTopologyError(DevKubeError):
    """The running node set does not match the expected topology."""


class ClusterNotProvisionedError(ClusterTopologyError):
    """No cluster nodes are running at all."""


class ClusterNotReadyError(DevKubeError):
    """Nodes are not ready and have not changed state within the freshness window."""


class RedeployRequestedError(DevKubeError):
    """The operator chose to redeploy a cluster that was still starting."""


class ProvisionError(DevKubeError):
    """The cluster could not be created."""


class RemoteActionError(DevKubeError):
    """
    An action running against one cluster node failed.

    Attributes:
        node: Name of the node the action ran on
        detail: Error text reported by the action (usually the command's stderr)
        returncode: Exit code of the remote command, when there was one
    """

    def __init__(self, node: str, detail: str, returncode: Optional[int] = None):
        message = f"action on node {node} failed: {detail}"
        if returncode is not None:
            message = f"action on node {node} failed with exit code {returncode}: {detail}"
        super().__init__(message)
        self.node = node
        self.detail = detail
        self.returncode = returncode


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Handle file-related errors."""
    handle_error(error, f"file {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors by logging them and exiting."""
    exit_code = kwargs.pop('exit_code', 1)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    import sys
    sys.exit(exit_code)
