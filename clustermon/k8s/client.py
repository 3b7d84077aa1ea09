"""Kubernetes API client for desired-state objects.

KubeClient implements the Client protocol on top of the official
``kubernetes`` package. ``create_or_update`` reads the live object and
replaces it (carrying over the resourceVersion) or creates it when absent;
``delete`` treats 404 as success.
"""

import logging
from typing import Any, Dict, Optional

from kubernetes import client, config
from kubernetes.client import ApiClient
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from clustermon.core.context import Context
from clustermon.core.errors import CancellationError
from clustermon.core.schema.kinds import ObjectIdentity, ResourceKind
from clustermon.core.schema.objects import DesiredObject

logger = logging.getLogger(__name__)

NOT_FOUND = 404


def load_api_client(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> ApiClient:
    """Build an ApiClient from in-cluster config, falling back to kubeconfig.

    Args:
        kubeconfig: Path to a kubeconfig file (default: $KUBECONFIG or ~/.kube/config)
        context: kubeconfig context to use (default: current context)
    """
    if kubeconfig is None and context is None:
        try:
            config.load_incluster_config()
            logger.info("Using in-cluster Kubernetes configuration")
            return ApiClient()
        except ConfigException:
            logger.debug("Not running in a cluster, falling back to kubeconfig")
    config.load_kube_config(config_file=kubeconfig, context=context)
    return ApiClient()


class _TypedApi:
    """Uniform read/create/replace/delete over a generated typed API.

    The generated APIs follow the ``<verb>_namespaced_<resource>`` /
    ``<verb>_<resource>`` naming convention, which is all this relies on.
    """

    def __init__(self, api: Any, resource: str, namespaced: bool) -> None:
        self.api = api
        self.resource = resource
        self.namespaced = namespaced

    def _method(self, verb: str):
        scope = "namespaced_" if self.namespaced else ""
        return getattr(self.api, f"{verb}_{scope}{self.resource}")

    def _scope(self, identity: ObjectIdentity) -> Dict[str, Any]:
        return {"namespace": identity.namespace} if self.namespaced else {}

    def read(self, identity: ObjectIdentity, **kwargs) -> Any:
        return self._method("read")(name=identity.name, **self._scope(identity), **kwargs)

    def create(self, identity: ObjectIdentity, body: Dict[str, Any], **kwargs) -> Any:
        return self._method("create")(body=body, **self._scope(identity), **kwargs)

    def replace(self, identity: ObjectIdentity, body: Dict[str, Any], **kwargs) -> Any:
        return self._method("replace")(
            name=identity.name, body=body, **self._scope(identity), **kwargs
        )

    def delete(self, identity: ObjectIdentity, **kwargs) -> Any:
        return self._method("delete")(name=identity.name, **self._scope(identity), **kwargs)


class _CustomApi:
    """Same interface as _TypedApi for CRD-backed kinds via CustomObjectsApi."""

    def __init__(self, api: client.CustomObjectsApi, kind: ResourceKind, plural: str) -> None:
        self.api = api
        self.group = kind.group
        self.version = kind.version
        self.plural = plural

    def read(self, identity: ObjectIdentity, **kwargs) -> Any:
        return self.api.get_namespaced_custom_object(
            self.group, self.version, identity.namespace, self.plural, identity.name, **kwargs
        )

    def create(self, identity: ObjectIdentity, body: Dict[str, Any], **kwargs) -> Any:
        return self.api.create_namespaced_custom_object(
            self.group, self.version, identity.namespace, self.plural, body, **kwargs
        )

    def replace(self, identity: ObjectIdentity, body: Dict[str, Any], **kwargs) -> Any:
        return self.api.replace_namespaced_custom_object(
            self.group, self.version, identity.namespace, self.plural, identity.name, body,
            **kwargs,
        )

    def delete(self, identity: ObjectIdentity, **kwargs) -> Any:
        return self.api.delete_namespaced_custom_object(
            self.group, self.version, identity.namespace, self.plural, identity.name, **kwargs
        )


def _resource_version(live: Any) -> Optional[str]:
    """Extract metadata.resourceVersion from a typed model or a plain dict."""
    if isinstance(live, dict):
        return (live.get("metadata") or {}).get("resourceVersion")
    metadata = getattr(live, "metadata", None)
    return getattr(metadata, "resource_version", None)


def _cluster_ips(api_client: ApiClient, live: Any) -> Dict[str, Any]:
    """Return the immutable clusterIP fields of a live Service.

    Typed models are serialized to their wire form first: the generated
    attribute name of clusterIPs differs between client releases.
    """
    if not isinstance(live, dict):
        live = api_client.sanitize_for_serialization(live)
    spec = (live or {}).get("spec") or {}
    fields = {}
    if spec.get("clusterIP"):
        fields["clusterIP"] = spec["clusterIP"]
    if spec.get("clusterIPs"):
        fields["clusterIPs"] = list(spec["clusterIPs"])
    return fields


class KubeClient:
    """Idempotent create-or-update and delete against a live cluster.

    Every call checks the context first and uses the time left before its
    deadline as the request timeout.

    Example:
        >>> kube = KubeClient(load_api_client())
        >>> kube.create_or_update(Context.background(), obj)
    """

    def __init__(self, api_client: Optional[ApiClient] = None) -> None:
        if api_client is None:
            api_client = load_api_client()
        self.api_client = api_client
        self.core = client.CoreV1Api(api_client)
        self.rbac = client.RbacAuthorizationV1Api(api_client)
        self.apps = client.AppsV1Api(api_client)
        self.policy = client.PolicyV1Api(api_client)
        self.apiregistration = client.ApiregistrationV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)
        self._apis = {
            ResourceKind.SERVICE_ACCOUNT: _TypedApi(self.core, "service_account", True),
            ResourceKind.CONFIG_MAP: _TypedApi(self.core, "config_map", True),
            ResourceKind.SERVICE: _TypedApi(self.core, "service", True),
            ResourceKind.CLUSTER_ROLE: _TypedApi(self.rbac, "cluster_role", False),
            ResourceKind.CLUSTER_ROLE_BINDING: _TypedApi(self.rbac, "cluster_role_binding", False),
            ResourceKind.ROLE_BINDING: _TypedApi(self.rbac, "role_binding", True),
            ResourceKind.DEPLOYMENT: _TypedApi(self.apps, "deployment", True),
            ResourceKind.POD_DISRUPTION_BUDGET: _TypedApi(
                self.policy, "pod_disruption_budget", True
            ),
            ResourceKind.API_SERVICE: _TypedApi(self.apiregistration, "api_service", False),
            ResourceKind.SERVICE_MONITOR: _CustomApi(
                self.custom, ResourceKind.SERVICE_MONITOR, "servicemonitors"
            ),
        }

    def create_or_update(self, ctx: Context, obj: DesiredObject) -> None:
        """Create the object or replace the live one.

        Raises:
            CancellationError: If the context is done
            ApiException: If the API server rejects a request
        """
        identity = obj.identity
        api = self._apis[identity.kind]
        body = obj.to_serializable()

        live = self._request(ctx, identity, api.read, identity, allow_missing=True)
        if live is None:
            self._request(ctx, identity, api.create, identity, body)
            logger.info(f"Created {identity}")
            return

        metadata = body.setdefault("metadata", {})
        resource_version = _resource_version(live)
        if resource_version:
            metadata["resourceVersion"] = resource_version
        if identity.kind is ResourceKind.SERVICE:
            for key, value in _cluster_ips(self.api_client, live).items():
                body.setdefault("spec", {}).setdefault(key, value)
        self._request(ctx, identity, api.replace, identity, body)
        logger.info(f"Updated {identity}")

    def delete(self, ctx: Context, obj: DesiredObject) -> None:
        """Delete the object; an already-absent object is not an error.

        Raises:
            CancellationError: If the context is done
            ApiException: If the API server rejects the request
        """
        identity = obj.identity
        api = self._apis[identity.kind]
        if self._request(ctx, identity, api.delete, identity, allow_missing=True) is None:
            logger.debug(f"{identity} already absent")
            return
        logger.info(f"Deleted {identity}")

    def _request(self, ctx: Context, identity: ObjectIdentity, method, *args,
                 allow_missing: bool = False) -> Any:
        """Issue one API request honouring the context.

        Returns:
            The API response, or None for a 404 when ``allow_missing`` is set
        """
        ctx.check()
        kwargs = {}
        remaining = ctx.remaining()
        if remaining is not None:
            kwargs["_request_timeout"] = remaining
        try:
            result = method(*args, **kwargs)
        except ApiException as e:
            if allow_missing and e.status == NOT_FOUND:
                return None
            raise
        except Exception as e:
            # Timeouts surface as transport errors; report them as cancellation
            # when they were caused by the deadline.
            reason = ctx.error()
            if reason is not None:
                raise CancellationError(f"{reason} while calling the API for {identity}") from e
            raise
        # Successful deletes may return an empty status body; keep it truthy.
        return result if result is not None else True
