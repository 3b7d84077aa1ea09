"""Resource tables of the monitoring components.

The order of each ``apply_order`` tuple is the order objects are created or
updated in: identity and permissions first, then networking and config,
then the workload, then the monitoring and registration objects that
reference it. ``check_apply_order`` enforces this when the module loads.

Both components register the ``v1beta1.metrics.k8s.io`` APIService, so
retiring prometheus-adapter never deletes it: metrics-server has already
taken it over by the time the retirement runs.
"""

from clustermon.core.schema.asset import Asset, ComponentResources, check_apply_order
from clustermon.core.schema.kinds import ResourceKind

METRICS_SERVER_COMPONENT = "metrics-server"
PROMETHEUS_ADAPTER_COMPONENT = "prometheus-adapter"

# metrics-server
MS_SERVICE_ACCOUNT = Asset(
    METRICS_SERVER_COMPONENT, ResourceKind.SERVICE_ACCOUNT, "service-account.yaml"
)
MS_CLUSTER_ROLE = Asset(
    METRICS_SERVER_COMPONENT, ResourceKind.CLUSTER_ROLE, "cluster-role.yaml"
)
MS_CLUSTER_ROLE_BINDING = Asset(
    METRICS_SERVER_COMPONENT, ResourceKind.CLUSTER_ROLE_BINDING, "cluster-role-binding.yaml"
)
MS_CLUSTER_ROLE_BINDING_AUTH_DELEGATOR = Asset(
    METRICS_SERVER_COMPONENT,
    ResourceKind.CLUSTER_ROLE_BINDING,
    "cluster-role-binding-auth-delegator.yaml",
    name="system:auth-delegator",
)
MS_ROLE_BINDING_AUTH_READER = Asset(
    METRICS_SERVER_COMPONENT,
    ResourceKind.ROLE_BINDING,
    "role-binding-auth-reader.yaml",
    name="auth-reader",
)
MS_SERVICE = Asset(METRICS_SERVER_COMPONENT, ResourceKind.SERVICE, "service.yaml")
MS_DEPLOYMENT = Asset(METRICS_SERVER_COMPONENT, ResourceKind.DEPLOYMENT, "deployment.yaml")
MS_SERVICE_MONITOR = Asset(
    METRICS_SERVER_COMPONENT, ResourceKind.SERVICE_MONITOR, "service-monitor.yaml"
)
MS_POD_DISRUPTION_BUDGET = Asset(
    METRICS_SERVER_COMPONENT,
    ResourceKind.POD_DISRUPTION_BUDGET,
    "pod-disruption-budget.yaml",
    optional=True,
)
MS_API_SERVICE = Asset(METRICS_SERVER_COMPONENT, ResourceKind.API_SERVICE, "api-service.yaml")

# prometheus-adapter
PA_SERVICE_ACCOUNT = Asset(
    PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.SERVICE_ACCOUNT, "service-account.yaml"
)
PA_CLUSTER_ROLE = Asset(
    PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.CLUSTER_ROLE, "cluster-role.yaml"
)
PA_CLUSTER_ROLE_BINDING = Asset(
    PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.CLUSTER_ROLE_BINDING, "cluster-role-binding.yaml"
)
PA_CLUSTER_ROLE_BINDING_DELEGATOR = Asset(
    PROMETHEUS_ADAPTER_COMPONENT,
    ResourceKind.CLUSTER_ROLE_BINDING,
    "cluster-role-binding-delegator.yaml",
    name="system:auth-delegator",
)
PA_ROLE_BINDING_AUTH_READER = Asset(
    PROMETHEUS_ADAPTER_COMPONENT,
    ResourceKind.ROLE_BINDING,
    "role-binding-auth-reader.yaml",
    name="auth-reader",
)
PA_CONFIG_MAP = Asset(PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.CONFIG_MAP, "config-map.yaml")
PA_SERVICE = Asset(PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.SERVICE, "service.yaml")
PA_DEPLOYMENT = Asset(PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.DEPLOYMENT, "deployment.yaml")
PA_SERVICE_MONITOR = Asset(
    PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.SERVICE_MONITOR, "service-monitor.yaml"
)
PA_POD_DISRUPTION_BUDGET = Asset(
    PROMETHEUS_ADAPTER_COMPONENT,
    ResourceKind.POD_DISRUPTION_BUDGET,
    "pod-disruption-budget.yaml",
    optional=True,
)
PA_API_SERVICE = Asset(
    PROMETHEUS_ADAPTER_COMPONENT, ResourceKind.API_SERVICE, "api-service.yaml"
)

METRICS_SERVER = ComponentResources(
    component=METRICS_SERVER_COMPONENT,
    apply_order=(
        MS_SERVICE_ACCOUNT,
        MS_CLUSTER_ROLE,
        MS_CLUSTER_ROLE_BINDING,
        MS_CLUSTER_ROLE_BINDING_AUTH_DELEGATOR,
        MS_ROLE_BINDING_AUTH_READER,
        MS_SERVICE,
        MS_DEPLOYMENT,
        MS_SERVICE_MONITOR,
        MS_POD_DISRUPTION_BUDGET,
        MS_API_SERVICE,
    ),
)

PROMETHEUS_ADAPTER = ComponentResources(
    component=PROMETHEUS_ADAPTER_COMPONENT,
    apply_order=(
        PA_SERVICE_ACCOUNT,
        PA_CLUSTER_ROLE,
        PA_CLUSTER_ROLE_BINDING,
        PA_CLUSTER_ROLE_BINDING_DELEGATOR,
        PA_ROLE_BINDING_AUTH_READER,
        PA_CONFIG_MAP,
        PA_SERVICE,
        PA_DEPLOYMENT,
        PA_SERVICE_MONITOR,
        PA_POD_DISRUPTION_BUDGET,
        PA_API_SERVICE,
    ),
    # TODO: retire the prometheus-adapter RBAC objects and ConfigMap as well
    retire_order=(
        PA_POD_DISRUPTION_BUDGET,
        PA_SERVICE_MONITOR,
        PA_SERVICE,
    ),
    residuals=((ResourceKind.DEPLOYMENT, "prometheus-adapter"),),
)

COMPONENTS = (METRICS_SERVER, PROMETHEUS_ADAPTER)

for _component in COMPONENTS:
    check_apply_order(_component.apply_order)
