"""K8s manifest factory.

This module builds the desired-state objects of the monitoring components
from the YAML templates under ``clustermon/k8s/manifests`` using ruamel.yaml,
overlaying the namespace and the per-component configuration. It
implements the Factory protocol: one builder method per asset, dispatched
by ``produce``.
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import kubernetes_validate
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from clustermon.core.config import ComponentConfig, OperatorConfig
from clustermon.core.errors import ConfigurationError
from clustermon.core.schema.asset import ABSENT, Asset, Present, Produced
from clustermon.core.schema.kinds import ResourceKind
from clustermon.k8s import assets
from clustermon.k8s.objects import KubeObject, to_plain
from clustermon.k8s.utils import get_containers, get_pod_spec, set_flag

logger = logging.getLogger(__name__)

MANIFESTS_DIR = Path(__file__).parent / "manifests"

# Kinds served by CRDs have no schema in kubernetes-validate.
_UNVALIDATED_KINDS = {ResourceKind.SERVICE_MONITOR}


def _create_yaml_instance() -> YAML:
    """Create ruamel.yaml instance for loading manifest templates.

    Returns:
        Safe-loading YAML instance; templates are data, never tagged objects
    """
    return YAML(typ="safe")


class ManifestFactory:
    """Builds desired-state KubeObjects for the monitoring components.

    Templates are parsed once and cached; every produced object is a fresh
    copy, so the factory can be shared by tasks running concurrently.

    Example:
        >>> factory = ManifestFactory("monitoring", OperatorConfig())
        >>> produced = factory.produce(assets.MS_DEPLOYMENT)
        >>> produced.obj.identity.name
        'metrics-server'
    """

    def __init__(
        self,
        namespace: str,
        config: Optional[OperatorConfig] = None,
        manifests_dir: Optional[Path] = None,
    ) -> None:
        self.namespace = namespace
        self.config = config or OperatorConfig(namespace=namespace)
        self.manifests_dir = Path(manifests_dir) if manifests_dir else MANIFESTS_DIR
        self._yaml = _create_yaml_instance()
        self._templates: Dict[Path, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._builders: Dict[Asset, Callable[[], Produced]] = {
            assets.MS_SERVICE_ACCOUNT: self.metrics_server_service_account,
            assets.MS_CLUSTER_ROLE: self.metrics_server_cluster_role,
            assets.MS_CLUSTER_ROLE_BINDING: self.metrics_server_cluster_role_binding,
            assets.MS_CLUSTER_ROLE_BINDING_AUTH_DELEGATOR:
                self.metrics_server_cluster_role_binding_auth_delegator,
            assets.MS_ROLE_BINDING_AUTH_READER: self.metrics_server_role_binding_auth_reader,
            assets.MS_SERVICE: self.metrics_server_service,
            assets.MS_DEPLOYMENT: self.metrics_server_deployment,
            assets.MS_SERVICE_MONITOR: self.metrics_server_service_monitor,
            assets.MS_POD_DISRUPTION_BUDGET: self.metrics_server_pod_disruption_budget,
            assets.MS_API_SERVICE: self.metrics_server_api_service,
            assets.PA_SERVICE_ACCOUNT: self.prometheus_adapter_service_account,
            assets.PA_CLUSTER_ROLE: self.prometheus_adapter_cluster_role,
            assets.PA_CLUSTER_ROLE_BINDING: self.prometheus_adapter_cluster_role_binding,
            assets.PA_CLUSTER_ROLE_BINDING_DELEGATOR:
                self.prometheus_adapter_cluster_role_binding_delegator,
            assets.PA_ROLE_BINDING_AUTH_READER: self.prometheus_adapter_role_binding_auth_reader,
            assets.PA_CONFIG_MAP: self.prometheus_adapter_config_map,
            assets.PA_SERVICE: self.prometheus_adapter_service,
            assets.PA_DEPLOYMENT: self.prometheus_adapter_deployment,
            assets.PA_SERVICE_MONITOR: self.prometheus_adapter_service_monitor,
            assets.PA_POD_DISRUPTION_BUDGET: self.prometheus_adapter_pod_disruption_budget,
            assets.PA_API_SERVICE: self.prometheus_adapter_api_service,
        }

    def produce(self, asset: Asset) -> Produced:
        """Build the desired-state object for an asset.

        Raises:
            ConfigurationError: If the asset is unknown, its template is
                missing or malformed, or the result fails validation
        """
        builder = self._builders.get(asset)
        if builder is None:
            raise ConfigurationError(f"No manifest builder registered for {asset}")
        return builder()

    # metrics-server

    def metrics_server_service_account(self) -> Produced:
        return self._namespaced(assets.MS_SERVICE_ACCOUNT)

    def metrics_server_cluster_role(self) -> Produced:
        return self._present(assets.MS_CLUSTER_ROLE, self._load(assets.MS_CLUSTER_ROLE))

    def metrics_server_cluster_role_binding(self) -> Produced:
        return self._binding(assets.MS_CLUSTER_ROLE_BINDING)

    def metrics_server_cluster_role_binding_auth_delegator(self) -> Produced:
        return self._binding(assets.MS_CLUSTER_ROLE_BINDING_AUTH_DELEGATOR)

    def metrics_server_role_binding_auth_reader(self) -> Produced:
        # Lives in kube-system; only the subject follows our namespace.
        return self._binding(assets.MS_ROLE_BINDING_AUTH_READER)

    def metrics_server_service(self) -> Produced:
        return self._namespaced(assets.MS_SERVICE)

    def metrics_server_deployment(self) -> Produced:
        asset = assets.MS_DEPLOYMENT
        manifest = self._load(asset)
        self._set_namespace(manifest)
        self._apply_component_config(asset, manifest, self.config.metrics_server)
        return self._present(asset, manifest)

    def metrics_server_service_monitor(self) -> Produced:
        asset = assets.MS_SERVICE_MONITOR
        manifest = self._load(asset)
        self._set_namespace(manifest)
        for endpoint in manifest.get("spec", {}).get("endpoints", []):
            tls = endpoint.get("tlsConfig")
            if tls is not None:
                tls["serverName"] = f"metrics-server.{self.namespace}.svc"
        return self._present(asset, manifest)

    def metrics_server_pod_disruption_budget(self) -> Produced:
        return self._pod_disruption_budget(assets.MS_POD_DISRUPTION_BUDGET)

    def metrics_server_api_service(self) -> Produced:
        return self._api_service(assets.MS_API_SERVICE)

    # prometheus-adapter

    def prometheus_adapter_service_account(self) -> Produced:
        return self._namespaced(assets.PA_SERVICE_ACCOUNT)

    def prometheus_adapter_cluster_role(self) -> Produced:
        return self._present(assets.PA_CLUSTER_ROLE, self._load(assets.PA_CLUSTER_ROLE))

    def prometheus_adapter_cluster_role_binding(self) -> Produced:
        return self._binding(assets.PA_CLUSTER_ROLE_BINDING)

    def prometheus_adapter_cluster_role_binding_delegator(self) -> Produced:
        return self._binding(assets.PA_CLUSTER_ROLE_BINDING_DELEGATOR)

    def prometheus_adapter_role_binding_auth_reader(self) -> Produced:
        return self._binding(assets.PA_ROLE_BINDING_AUTH_READER)

    def prometheus_adapter_config_map(self) -> Produced:
        return self._namespaced(assets.PA_CONFIG_MAP)

    def prometheus_adapter_service(self) -> Produced:
        return self._namespaced(assets.PA_SERVICE)

    def prometheus_adapter_deployment(self) -> Produced:
        asset = assets.PA_DEPLOYMENT
        manifest = self._load(asset)
        self._set_namespace(manifest)
        self._apply_component_config(asset, manifest, self.config.prometheus_adapter)
        for container in get_containers(manifest):
            if container.get("name") == "prometheus-adapter":
                container["args"] = set_flag(
                    container.get("args", []),
                    "--prometheus-url",
                    f"http://prometheus-k8s.{self.namespace}.svc:9090/",
                )
        return self._present(asset, manifest)

    def prometheus_adapter_service_monitor(self) -> Produced:
        return self._namespaced(assets.PA_SERVICE_MONITOR)

    def prometheus_adapter_pod_disruption_budget(self) -> Produced:
        return self._pod_disruption_budget(assets.PA_POD_DISRUPTION_BUDGET)

    def prometheus_adapter_api_service(self) -> Produced:
        return self._api_service(assets.PA_API_SERVICE)

    # shared overlays

    def _namespaced(self, asset: Asset) -> Produced:
        manifest = self._load(asset)
        self._set_namespace(manifest)
        return self._present(asset, manifest)

    def _binding(self, asset: Asset) -> Produced:
        manifest = self._load(asset)
        for subject in manifest.get("subjects", []):
            if subject.get("kind") == "ServiceAccount":
                subject["namespace"] = self.namespace
        return self._present(asset, manifest)

    def _pod_disruption_budget(self, asset: Asset) -> Produced:
        # A single replica cannot satisfy minAvailable: 1 during node drains.
        if not self.config.high_availability:
            return ABSENT
        return self._namespaced(asset)

    def _api_service(self, asset: Asset) -> Produced:
        manifest = self._load(asset)
        manifest.setdefault("spec", {}).setdefault("service", {})["namespace"] = self.namespace
        return self._present(asset, manifest)

    def _set_namespace(self, manifest: Dict[str, Any]) -> None:
        manifest.setdefault("metadata", {})["namespace"] = self.namespace

    def _apply_component_config(
        self, asset: Asset, manifest: Dict[str, Any], component: ComponentConfig
    ) -> None:
        """Overlay replicas, scheduling and container settings on a Deployment."""
        spec = manifest.setdefault("spec", {})
        if component.replicas is not None:
            spec["replicas"] = component.replicas
        elif self.config.high_availability:
            spec["replicas"] = 2

        pod_spec = get_pod_spec(manifest)
        if component.node_selector:
            pod_spec["nodeSelector"] = dict(component.node_selector)
        if component.tolerations:
            pod_spec["tolerations"] = copy.deepcopy(component.tolerations)

        containers = [c for c in get_containers(manifest) if c.get("name") == asset.component]
        if not containers:
            raise ConfigurationError(
                f"{asset.template} has no container named {asset.component}"
            )
        container = containers[0]
        if component.image:
            container["image"] = component.image
        if component.resources:
            container["resources"] = copy.deepcopy(component.resources)
        if component.verbosity is not None:
            container["args"] = set_flag(container.get("args", []), "--v", component.verbosity)

    def _load(self, asset: Asset) -> Dict[str, Any]:
        """Return a fresh copy of the parsed template of an asset."""
        path = self.manifests_dir / asset.component / asset.template
        with self._lock:
            template = self._templates.get(path)
            if template is None:
                try:
                    content = path.read_text(encoding="utf-8")
                except OSError as e:
                    raise ConfigurationError(f"Failed to read template {path}: {e}") from e
                try:
                    data = self._yaml.load(content)
                except YAMLError as e:
                    raise ConfigurationError(f"Failed to parse template {path}: {e}") from e
                if not isinstance(data, dict):
                    raise ConfigurationError(f"Template {path} is not a YAML mapping")
                template = to_plain(data)
                self._templates[path] = template
                logger.debug(f"Loaded template {path}")
        return copy.deepcopy(template)

    def _present(self, asset: Asset, manifest: Dict[str, Any]) -> Present:
        obj = KubeObject(manifest=manifest)
        try:
            kind = obj.kind
        except ValueError as e:
            raise ConfigurationError(f"{asset.template}: {e}") from e
        if not obj.name:
            raise ConfigurationError(f"{asset.template} has no metadata.name")

        if self.config.validate_schema and kind not in _UNVALIDATED_KINDS:
            try:
                kubernetes_validate.validate(manifest, self.config.kubernetes_version, strict=False)
            except kubernetes_validate.ValidationError as e:
                location = ".".join(str(p) for p in e.path)
                raise ConfigurationError(
                    f"{asset.template} failed schema validation at {location or '<root>'}: "
                    f"{e.message}"
                ) from e
        return Present(obj)
