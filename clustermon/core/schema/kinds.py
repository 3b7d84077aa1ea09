"""Resource kinds and object identities."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

# Dependency tiers: objects of a lower tier must exist before the objects of
# a higher tier that consume them.
TIER_IDENTITY = 0
TIER_NETWORK = 1
TIER_WORKLOAD = 2
TIER_MONITORING = 3


class ResourceKind(Enum):
    """Class of cluster object a task manages.

    Each member carries ``(api_version, kind, namespaced, tier)``.
    """

    SERVICE_ACCOUNT = ("v1", "ServiceAccount", True, TIER_IDENTITY)
    CLUSTER_ROLE = ("rbac.authorization.k8s.io/v1", "ClusterRole", False, TIER_IDENTITY)
    CLUSTER_ROLE_BINDING = (
        "rbac.authorization.k8s.io/v1", "ClusterRoleBinding", False, TIER_IDENTITY
    )
    ROLE_BINDING = ("rbac.authorization.k8s.io/v1", "RoleBinding", True, TIER_IDENTITY)
    CONFIG_MAP = ("v1", "ConfigMap", True, TIER_NETWORK)
    SERVICE = ("v1", "Service", True, TIER_NETWORK)
    DEPLOYMENT = ("apps/v1", "Deployment", True, TIER_WORKLOAD)
    SERVICE_MONITOR = ("monitoring.coreos.com/v1", "ServiceMonitor", True, TIER_MONITORING)
    POD_DISRUPTION_BUDGET = ("policy/v1", "PodDisruptionBudget", True, TIER_MONITORING)
    API_SERVICE = ("apiregistration.k8s.io/v1", "APIService", False, TIER_MONITORING)

    def __init__(self, api_version: str, kind: str, namespaced: bool, tier: int) -> None:
        self.api_version = api_version
        self.kind = kind
        self.namespaced = namespaced
        self.tier = tier

    @property
    def group(self) -> str:
        """API group, empty for the core group."""
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "ResourceKind":
        """Look up the kind of a manifest by its apiVersion and kind fields.

        Raises:
            ValueError: If the manifest is not of a known kind
        """
        api_version = manifest.get("apiVersion")
        kind = manifest.get("kind")
        for member in cls:
            if member.api_version == api_version and member.kind == kind:
                return member
        raise ValueError(f"Unknown resource kind: {api_version} {kind}")


@dataclass(frozen=True)
class ObjectIdentity:
    """Identity of a cluster object: kind, name and namespace.

    ``namespace`` is None for cluster-scoped kinds. An identity is itself a
    valid delete target, which lets tasks delete objects they know only by
    name without producing a full manifest.
    """

    kind: ResourceKind
    name: str
    namespace: Optional[str] = None

    @property
    def identity(self) -> "ObjectIdentity":
        return self

    def to_serializable(self) -> Dict[str, Any]:
        metadata = {"name": self.name}
        if self.namespace is not None:
            metadata["namespace"] = self.namespace
        return {"apiVersion": self.kind.api_version, "kind": self.kind.kind, "metadata": metadata}

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name} {self.kind.kind}"
        return f"{self.name} {self.kind.kind}"
