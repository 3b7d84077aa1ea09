"""K8s desired-state object implementation.

This module provides the KubeObject class that wraps a single Kubernetes
manifest. It implements the DesiredObject protocol for the K8s domain.
"""

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML

from clustermon.core.schema.kinds import ObjectIdentity, ResourceKind


def to_plain(value: Any) -> Any:
    """Recursively convert ruamel containers into plain dicts and lists."""
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class KubeObject:
    """Kubernetes manifest of a single object.

    Attributes:
        manifest: The object as a plain mapping.
                  Example: ``{"apiVersion": "v1", "kind": "Service", ...}``

    Example:
        >>> obj = KubeObject.from_yaml('''
        ... apiVersion: v1
        ... kind: ServiceAccount
        ... metadata:
        ...   name: metrics-server
        ...   namespace: monitoring
        ... ''')
        >>> str(obj.identity)
        'monitoring/metrics-server ServiceAccount'
    """
    manifest: Dict[str, Any]

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.from_manifest(self.manifest)

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.manifest.get("metadata") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def identity(self) -> ObjectIdentity:
        kind = self.kind
        return ObjectIdentity(kind, self.name, self.namespace if kind.namespaced else None)

    def to_serializable(self) -> Dict[str, Any]:
        """Convert object to JSON-serializable format.

        Implements DesiredObject protocol. Returns a deep copy so callers
        (clients in particular) may mutate the result freely.

        Returns:
            Plain dict copy of the manifest
        """
        return copy.deepcopy(to_plain(self.manifest))

    @classmethod
    def from_yaml(cls, content: str) -> "KubeObject":
        """Load KubeObject from a YAML document string."""
        yaml = YAML(typ="safe")
        return cls(manifest=to_plain(yaml.load(content)))

    @classmethod
    def from_file(cls, file_path: str) -> "KubeObject":
        """Load KubeObject from a YAML file.

        Example:
            >>> obj = KubeObject.from_file("service.yaml")
        """
        return cls.from_yaml(Path(file_path).read_text(encoding="utf-8"))
