"""Unit tests for the monitoring component tasks.

Tests cover:
- build_tasks wiring of the metrics-server switch
- The exact apply and delete sequence of MetricsServerTask
- Fail-fast behaviour on a mid-sequence failure
- PrometheusAdapterTask applying its own resources
"""

import pytest

from clustermon.core.config import OperatorConfig
from clustermon.core.context import Context
from clustermon.core.errors import ReconciliationError
from clustermon.core.schema import ObjectIdentity, ResourceKind
from clustermon.k8s import assets
from clustermon.k8s.factory import ManifestFactory
from clustermon.k8s.recording import APPLY, DELETE, RecordingClient
from clustermon.k8s.tasks import MetricsServerTask, PrometheusAdapterTask, build_tasks

NS = "monitoring"


def ident(kind, name, namespace=NS):
    return ObjectIdentity(kind, name, namespace)


METRICS_SERVER_APPLIES = [
    ident(ResourceKind.SERVICE_ACCOUNT, "metrics-server"),
    ident(ResourceKind.CLUSTER_ROLE, "system:metrics-server", None),
    ident(ResourceKind.CLUSTER_ROLE_BINDING, "system:metrics-server", None),
    ident(ResourceKind.CLUSTER_ROLE_BINDING, "metrics-server:system:auth-delegator", None),
    ident(ResourceKind.ROLE_BINDING, "metrics-server-auth-reader", "kube-system"),
    ident(ResourceKind.SERVICE, "metrics-server"),
    ident(ResourceKind.DEPLOYMENT, "metrics-server"),
    ident(ResourceKind.SERVICE_MONITOR, "metrics-server"),
]
METRICS_SERVER_PDB = ident(ResourceKind.POD_DISRUPTION_BUDGET, "metrics-server")
API_SERVICE = ident(ResourceKind.API_SERVICE, "v1beta1.metrics.k8s.io", None)

ADAPTER_DELETES = [
    ident(ResourceKind.SERVICE_MONITOR, "prometheus-adapter"),
    ident(ResourceKind.SERVICE, "prometheus-adapter"),
    ident(ResourceKind.DEPLOYMENT, "prometheus-adapter"),
]
ADAPTER_PDB = ident(ResourceKind.POD_DISRUPTION_BUDGET, "prometheus-adapter")


def metrics_server_task(client, high_availability=False, enabled=True):
    config = OperatorConfig(namespace=NS, high_availability=high_availability)
    factory = ManifestFactory(NS, config)
    return MetricsServerTask(Context.background(), NS, client, enabled, factory, config)


class TestBuildTasks:
    """Tests for build_tasks."""

    @pytest.mark.parametrize("enabled", [True, False])
    def test_exactly_one_task_enabled(self, enabled):
        config = OperatorConfig.from_dict({"metrics_server": {"enabled": enabled}})
        tasks = build_tasks(
            Context.background(), config, RecordingClient(), ManifestFactory(NS, config)
        )
        by_name = {task.name: task for task in tasks}
        assert by_name["metrics-server"].enabled is enabled
        assert by_name["prometheus-adapter"].enabled is not enabled

    def test_tasks_share_namespace(self):
        config = OperatorConfig(namespace="obs")
        tasks = build_tasks(
            Context.background(), config, RecordingClient(), ManifestFactory("obs", config)
        )
        assert {task.namespace for task in tasks} == {"obs"}


class TestMetricsServerTask:
    """Tests for the metrics-server reconciliation sequence."""

    def test_sequence_without_ha(self):
        """Test the full apply and retirement sequence on a single-node cluster."""
        kube = RecordingClient()
        metrics_server_task(kube).run()
        assert kube.identities(APPLY) == METRICS_SERVER_APPLIES + [API_SERVICE]
        assert kube.identities(DELETE) == ADAPTER_DELETES

    def test_sequence_with_ha(self):
        kube = RecordingClient()
        metrics_server_task(kube, high_availability=True).run()
        assert kube.identities(APPLY) == METRICS_SERVER_APPLIES + [METRICS_SERVER_PDB, API_SERVICE]
        assert kube.identities(DELETE) == [ADAPTER_PDB] + ADAPTER_DELETES

    def test_all_applies_precede_deletes(self):
        kube = RecordingClient()
        metrics_server_task(kube).run()
        actions = [call.action for call in kube.calls]
        assert actions == sorted(actions)

    def test_disabled(self):
        kube = RecordingClient()
        metrics_server_task(kube, enabled=False).run()
        assert kube.calls == []

    def test_deployment_failure_stops_sequence(self):
        """Test that a failed Deployment apply skips later applies and all deletes."""
        kube = RecordingClient()
        deployment = ident(ResourceKind.DEPLOYMENT, "metrics-server")
        kube.fail_on(APPLY, deployment, RuntimeError("quota exceeded"))
        with pytest.raises(ReconciliationError) as exc:
            metrics_server_task(kube).run()
        assert exc.value.identity == deployment
        assert str(exc.value) == (
            "reconciling monitoring/metrics-server Deployment failed: quota exceeded"
        )
        assert kube.identities(APPLY) == METRICS_SERVER_APPLIES[:6]
        assert kube.identities(DELETE) == []

    def test_retirement_failure_reports_deleting(self):
        kube = RecordingClient()
        kube.fail_on(DELETE, ADAPTER_DELETES[1], RuntimeError("conflict"))
        with pytest.raises(ReconciliationError, match="deleting monitoring/prometheus-adapter"):
            metrics_server_task(kube).run()
        assert kube.identities(DELETE) == ADAPTER_DELETES[:1]


class TestPrometheusAdapterTask:
    """Tests for the prometheus-adapter task."""

    def test_applies_adapter_resources_only(self):
        config = OperatorConfig(namespace=NS)
        kube = RecordingClient()
        PrometheusAdapterTask(
            Context.background(), NS, kube, True, ManifestFactory(NS, config), config
        ).run()
        applied = kube.identities(APPLY)
        assert len(applied) == len(assets.PROMETHEUS_ADAPTER.apply_order) - 1
        assert ident(ResourceKind.CONFIG_MAP, "adapter-config") in applied
        assert applied[-1] == API_SERVICE
        assert kube.identities(DELETE) == []
        api_service = kube.objects[API_SERVICE]
        assert api_service["spec"]["service"]["name"] == "prometheus-adapter"
