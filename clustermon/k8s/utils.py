"""Shared manifest helpers for the K8s factory.

This module provides small accessors for the nested parts of Deployment
manifests that configuration overlays touch.
"""

from typing import Any, Dict, List


def get_pod_spec(manifest: dict) -> Dict[str, Any]:
    """Return the pod template spec of a Deployment manifest, creating it if missing.

    Args:
        manifest: Kubernetes Deployment manifest dict

    Returns:
        The (mutable) pod spec dict
    """
    template = manifest.setdefault("spec", {}).setdefault("template", {})
    return template.setdefault("spec", {})


def get_containers(manifest: dict) -> List[Dict[str, Any]]:
    """Extract containers list from Deployment manifest.

    Args:
        manifest: Kubernetes manifest dict

    Returns:
        List of container dicts, empty list if not found
    """
    return (manifest.get("spec", {})
            .get("template", {})
            .get("spec", {})
            .get("containers", []))


def set_flag(args: List[str], flag: str, value: Any) -> List[str]:
    """Set ``--flag=value`` in a container args list, replacing any previous value."""
    prefix = f"{flag}="
    kept = [arg for arg in args if arg != flag and not arg.startswith(prefix)]
    kept.append(f"{prefix}{value}")
    return kept
