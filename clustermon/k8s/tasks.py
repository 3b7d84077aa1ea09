"""Reconciliation tasks of the monitoring components.

metrics-server replaces prometheus-adapter as the provider of the resource
metrics API. Exactly one of the two tasks is enabled per cycle:

- MetricsServerTask applies the metrics-server resources, then retires the
  prometheus-adapter resources.
- PrometheusAdapterTask applies the prometheus-adapter resources while
  metrics-server is disabled.
"""

from typing import List

from clustermon.core.config import OperatorConfig
from clustermon.core.context import Context
from clustermon.core.schema.client import Client
from clustermon.core.schema.factory import Factory
from clustermon.core.tasks.base import Task
from clustermon.k8s import assets


class MetricsServerTask(Task):
    """Drives metrics-server to its desired state and retires prometheus-adapter."""

    name = "metrics-server"
    resources = assets.METRICS_SERVER
    retires = (assets.PROMETHEUS_ADAPTER,)


class PrometheusAdapterTask(Task):
    """Drives prometheus-adapter to its desired state."""

    name = "prometheus-adapter"
    resources = assets.PROMETHEUS_ADAPTER


def build_tasks(
    ctx: Context, config: OperatorConfig, client: Client, factory: Factory
) -> List[Task]:
    """Build the monitoring tasks for one reconciliation cycle.

    Args:
        ctx: Context the tasks run under
        config: Operator configuration; ``metrics_server.enabled`` picks the
                resource metrics provider
        client: Cluster client shared by all tasks
        factory: Manifest factory shared by all tasks

    Returns:
        The tasks in the order they should run
    """
    metrics_server_enabled = config.metrics_server_enabled
    return [
        PrometheusAdapterTask(
            ctx, config.namespace, client, not metrics_server_enabled, factory, config
        ),
        MetricsServerTask(ctx, config.namespace, client, metrics_server_enabled, factory, config),
    ]
