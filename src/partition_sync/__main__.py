"""Entry point for partition-sync."""

import argparse
import logging
import sys
from typing import Any

from partition_sync import __version__
from partition_sync.config import LogLevel, PartitionSyncConfig
from partition_sync.models import CaseResult
from partition_sync.utils.errors import AuthenticationError


def setup_logging(level: LogLevel) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="partition-sync",
        description="Verify Consul admin partition federation and catalog sync across two clusters",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Cluster options
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to kubeconfig file",
    )
    parser.add_argument(
        "--primary-context",
        default=None,
        help="Kubeconfig context of the cluster hosting the servers",
    )
    parser.add_argument(
        "--secondary-context",
        default=None,
        help="Kubeconfig context of the cluster hosting the secondary partition",
    )
    parser.add_argument(
        "--namespace",
        default=None,
        help="Kubernetes namespace to install Consul into (default: default)",
    )
    parser.add_argument(
        "--use-kind",
        action="store_true",
        help="Clusters are kind clusters on a shared docker network",
    )
    parser.add_argument(
        "--enterprise",
        action="store_true",
        help="Consul Enterprise is available (required for admin partitions)",
    )

    # Case selection
    parser.add_argument(
        "--case",
        action="append",
        default=None,
        help="Run only this case, by name or slug (repeatable)",
    )
    parser.add_argument(
        "--list-cases",
        action="store_true",
        help="List the available cases and exit",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=1,
        help="Number of cases to run concurrently (default: 1)",
    )
    parser.add_argument(
        "--no-cleanup-on-failure",
        action="store_true",
        help="Leave resources in place when a case fails",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PartitionSyncConfig:
    """Build config from args, falling back to environment/defaults."""
    config_kwargs: dict[str, Any] = {}

    if args.kubeconfig:
        config_kwargs["kubeconfig_path"] = args.kubeconfig
    if args.primary_context:
        config_kwargs["primary_context"] = args.primary_context
    if args.secondary_context:
        config_kwargs["secondary_context"] = args.secondary_context
    if args.namespace:
        config_kwargs["kube_namespace"] = args.namespace
    if args.use_kind:
        config_kwargs["use_kind"] = True
    if args.enterprise:
        config_kwargs["enable_enterprise"] = True
    if args.no_cleanup_on_failure:
        config_kwargs["no_cleanup_on_failure"] = True
    if args.log_level:
        config_kwargs["log_level"] = LogLevel(args.log_level)

    return PartitionSyncConfig(**config_kwargs)


def print_summary(results: list[CaseResult]) -> None:
    """Print one line per case to stdout."""
    for result in results:
        line = f"{result.status.value.upper():8} {result.case.name}"
        if result.message:
            line += f" - {result.message}"
        print(line)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    from partition_sync.scenario.cases import build_cases, select_cases

    cases = build_cases(config.workload_namespace)
    if args.list_cases:
        for case in cases:
            print(f"{case.slug}: {case.name}")
        return 0

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting partition-sync v{__version__}")

    try:
        selected = select_cases(cases, args.case)
        warnings = config.validate_kube_config()
        for warning in warnings:
            logger.warning(warning)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    from partition_sync.scenario.driver import ScenarioDriver, run_cases
    from partition_sync.scenario.environment import open_environment

    try:
        with open_environment(config) as env:
            results = run_cases(ScenarioDriver(env), selected, parallelism=args.parallel)
    except AuthenticationError as e:
        logger.error(f"Kubernetes authentication failed: {e}")
        return 1

    print_summary(results)
    return 0 if all(result.ok for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
