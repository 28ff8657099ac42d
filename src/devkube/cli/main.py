"""
Command-line interface for the devkube local development engine.

Two command groups are provided:

- `devkube cluster start|check|patch-registry` manages the local cluster
- `devkube buildlog --service NAME` reads the build service's raw JSON
  progress stream from stdin, writes the service's log file and echoes every
  line to stdout
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from ..buildlog import EventProcessor, iter_solve_statuses
from ..cluster import ClusterProvisioner
from ..config import get_config, set_config_path
from ..models import AppConfig, ClusterSession, HealthReport
from ..validation import (
    DevKubeError,
    ValidationError,
    handle_cli_error,
    validate_registry_address,
    validate_service_name,
)

# --- Logging Setup ---
# Logs go to stderr, stdout carries the echoed build log lines.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_YES = ("y", "yes")
_NO = ("", "n", "no")


def prompt_redeploy(
    report: HealthReport,
    read: Callable[[str], str] = input,
    out: Optional[TextIO] = None,
) -> bool:
    """
    Ask the operator whether a cluster that is still starting should be redeployed.

    Anything other than an explicit yes, including an empty answer, means no.
    """
    out = out or sys.stdout
    print(f"Cluster check: {report.message}", file=out)
    while True:
        answer = read("Do you want to redeploy the cluster? [y/N] ").strip().lower()
        if answer in _YES:
            return True
        if answer in _NO:
            return False
        print("Please answer 'y' or 'n'.", file=out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devkube",
        description="Local development engine: cluster lifecycle and build logs.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to config.toml. Defaults to conf/config.toml in the repository.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    cluster = commands.add_parser("cluster", help="Manage the local cluster.")
    cluster_commands = cluster.add_subparsers(dest="action", required=True)
    cluster_commands.add_parser(
        "start", help="Remove leftover node containers and create the cluster."
    )
    cluster_commands.add_parser(
        "check", help="Check that the cluster has the expected nodes and that they are ready."
    )
    patch = cluster_commands.add_parser(
        "patch-registry", help="Let every node pull from a plain-HTTP registry."
    )
    patch.add_argument(
        "--registry",
        type=str,
        help="Registry address (host:port). Defaults to cluster.registry from config.",
    )

    buildlog = commands.add_parser(
        "buildlog", help="Log a raw JSON build progress stream read from stdin."
    )
    buildlog.add_argument(
        "-s", "--service", type=str, required=True, help="Service being built."
    )
    buildlog.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Also log a dump of every raw event.",
    )
    return parser


async def run_cluster_command(
    app_config: AppConfig, action: str, registry: Optional[str] = None
) -> None:
    """Run one `cluster` sub-command."""
    provisioner = ClusterProvisioner(ClusterSession.from_config(app_config.cluster))

    if action == "start":
        await provisioner.start_cluster()
        logger.info(f"Cluster {provisioner.session.name} started")
    elif action == "check":
        await provisioner.check_cluster(confirm=prompt_redeploy)
        logger.info(f"Cluster {provisioner.session.name} is healthy")
    elif action == "patch-registry":
        await provisioner.patch_registry_containers(registry)
    else:
        raise ValueError(f"unknown cluster action: {action}")


def run_buildlog(
    app_config: AppConfig,
    service: str,
    verbose: bool,
    stream: Optional[TextIO] = None,
    out: Optional[TextIO] = None,
) -> int:
    """
    Feed a raw JSON progress stream into the service's log.

    Returns:
        Number of event batches processed
    """
    stream = stream or sys.stdin
    out = out or sys.stdout
    processor = EventProcessor.from_config(app_config.buildlog)
    processor.verbose = verbose or app_config.buildlog.verbose

    def echo(_service: str, line: str) -> None:
        out.write(line)
        out.flush()

    processed = 0
    with processor:
        processor.add_listener(echo)
        for batch in iter_solve_statuses(stream):
            processor.process(service, batch)
            processed += 1
    logger.info(f"Processed {processed} event batches for {service}")
    return processed


def main_cli(argv: Optional[list] = None) -> None:
    """
    Main command-line interface for devkube.

    Raises:
        SystemExit: On configuration errors, failed operations or interruption.
    """
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.config:
        set_config_path(args.config)

    try:
        app_config = get_config()
    except (OSError, ValueError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            logger=logger,
        )

    try:
        if args.command == "cluster":
            registry = getattr(args, "registry", None)
            if registry:
                registry = validate_registry_address(registry, field_name="--registry")
            asyncio.run(run_cluster_command(app_config, args.action, registry))
        elif args.command == "buildlog":
            service = validate_service_name(args.service, field_name="--service")
            run_buildlog(app_config, service, args.verbose)
    except ValidationError as e:
        handle_cli_error(error=e, context="argument validation", exit_code=2, logger=logger)
    except DevKubeError as e:
        handle_cli_error(error=e, context=args.command, exit_code=1, logger=logger)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main_cli()
