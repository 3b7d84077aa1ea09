"""clustermon CLI - Command-line interface for monitoring stack reconciliation.

This module provides the main CLI entrypoint for clustermon, running one
reconciliation cycle of the monitoring tasks against a cluster (or an
in-memory stand-in with --dry-run).
"""

import argparse
import dataclasses
import logging
import sys

from clustermon.core.config import load_operator_config
from clustermon.core.context import Context
from clustermon.core.errors import ConfigurationError, TaskGroupError
from clustermon.core.tasks.runner import TaskRunner, raise_for_outcomes
from clustermon.k8s import assets
from clustermon.k8s.factory import ManifestFactory
from clustermon.k8s.recording import RecordingClient
from clustermon.k8s.tasks import build_tasks

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entrypoint for clustermon."""
    parser = argparse.ArgumentParser(
        prog="clustermon",
        description="clustermon - reconcile the cluster monitoring stack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile using config.json in the current directory
  clustermon reconcile

  # Switch the resource metrics provider to metrics-server
  clustermon reconcile --metrics-server

  # Show what would be applied and deleted, without a cluster
  clustermon reconcile --metrics-server --dry-run -v

  # Print the declared apply and retirement order
  clustermon plan

Note:
  Settings are read from config.json; command-line flags override them.
  Environment variables (e.g. METRICS_SERVER_ENABLED=true) fill in unset keys.
"""
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Run one reconciliation cycle"
    )
    reconcile_parser.add_argument(
        "--config",
        default="config.json",
        help="Path to config file (default: config.json)"
    )
    reconcile_parser.add_argument(
        "--namespace",
        help="Namespace of the monitoring stack (overrides config.json)"
    )
    reconcile_parser.add_argument(
        "--metrics-server",
        dest="metrics_server",
        action="store_const",
        const=True,
        default=None,
        help="Serve resource metrics with metrics-server (retires prometheus-adapter)"
    )
    reconcile_parser.add_argument(
        "--no-metrics-server",
        dest="metrics_server",
        action="store_const",
        const=False,
        help="Serve resource metrics with prometheus-adapter"
    )
    reconcile_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline for the whole cycle in seconds (default: none)"
    )
    reconcile_parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run the tasks concurrently"
    )
    reconcile_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory cluster and print the calls that would be made"
    )
    reconcile_parser.add_argument(
        "--kubeconfig",
        help="Path to kubeconfig (default: in-cluster config, then ~/.kube/config)"
    )
    reconcile_parser.add_argument(
        "--context",
        help="kubeconfig context to use"
    )
    reconcile_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    # Plan command
    subparsers.add_parser(
        "plan",
        help="Print the declared apply and retirement order of each component"
    )

    args = parser.parse_args(argv)

    # Setup logging
    if hasattr(args, 'verbose') and args.verbose:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')

    # Handle commands
    if args.command == "reconcile":
        return cmd_reconcile(args)
    elif args.command == "plan":
        return cmd_plan(args)
    else:
        parser.print_help()
        return 1


def cmd_reconcile(args):
    """Handle reconcile command."""
    try:
        config = load_operator_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # CLI flags override config.json
    if args.namespace:
        config = dataclasses.replace(config, namespace=args.namespace)
    if args.metrics_server is not None:
        config = dataclasses.replace(
            config,
            metrics_server=dataclasses.replace(config.metrics_server, enabled=args.metrics_server),
        )

    ctx = Context.background()
    if args.timeout is not None:
        ctx = ctx.with_timeout(args.timeout)

    if args.dry_run:
        client = RecordingClient()
    else:
        from clustermon.k8s.client import KubeClient, load_api_client
        try:
            client = KubeClient(load_api_client(args.kubeconfig, args.context))
        except Exception as e:
            print(f"Error: cannot connect to the cluster: {e}", file=sys.stderr)
            logger.exception("Cluster client setup failed")
            return 1

    factory = ManifestFactory(config.namespace, config)
    tasks = build_tasks(ctx, config, client, factory)
    provider = "metrics-server" if config.metrics_server_enabled else "prometheus-adapter"
    print(f"Reconciling monitoring stack in namespace {config.namespace} "
          f"(resource metrics: {provider})")

    outcomes = TaskRunner(tasks, parallel=args.parallel).run(ctx)

    if args.dry_run:
        print("\nCalls:")
        for call in client.calls:
            print(f"  {call.action:<6} {call.identity} ({call.result})")

    print()
    for outcome in outcomes:
        status = "ok" if outcome.succeeded else f"FAILED: {outcome.error}"
        print(f"  {outcome.name}: {status}")

    try:
        raise_for_outcomes(outcomes)
    except TaskGroupError as e:
        logger.error(str(e))
        return 1
    return 0


def cmd_plan(args):
    """Handle plan command."""
    for component in assets.COMPONENTS:
        print(f"{component.component}:")
        print("  apply:")
        for i, asset in enumerate(component.apply_order, 1):
            optional = " (optional)" if asset.optional else ""
            print(f"    {i:>2}. {asset}{optional}")
        if component.retire_order or component.residuals:
            print("  retire:")
            for i, asset in enumerate(component.retire_order, 1):
                print(f"    {i:>2}. {asset}")
            for kind, name in component.residuals:
                print(f"     -  {name} {kind.kind} (by name)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
