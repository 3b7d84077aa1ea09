"""Centralized configuration loading for clustermon.

This module provides utilities for loading and accessing configuration from
config.json with support for environment variable fallbacks and default
values, plus the typed OperatorConfig view handed to factories and tasks.

Example config.json::

    {
      "namespace": "monitoring",
      "high_availability": true,
      "metrics_server": {"enabled": true, "replicas": 2, "verbosity": 2},
      "prometheus_adapter": {"node_selector": {"kubernetes.io/os": "linux"}}
    }
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from clustermon.core.errors import ConfigurationError

DEFAULT_NAMESPACE = "monitoring"
DEFAULT_KUBERNETES_VERSION = "1.28.0"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def load_config(config_path: str = "config.json") -> Dict[str, Any]:
    """Load configuration from JSON file.

    Returns empty dict if the file doesn't exist.

    Args:
        config_path: Path to config.json file (default: "config.json")

    Returns:
        Configuration dictionary, or empty dict if file not found

    Raises:
        ConfigurationError: If the file exists but is not a JSON object
    """
    path = Path(config_path)

    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return data


def get_config_value(
    keys: List[str], default: Any = None, config: Optional[Dict[str, Any]] = None
) -> Any:
    """Get nested configuration value with fallback to environment variable.

    Supports dot-notation keys like ["metrics_server", "enabled"].
    Also checks environment variables as fallback (e.g., METRICS_SERVER_ENABLED
    for metrics_server.enabled).

    Args:
        keys: List of keys to traverse (e.g., ["metrics_server", "enabled"])
        default: Default value if key not found
        config: Optional config dict (uses load_config() if not provided)

    Returns:
        Configuration value, or default if not found
    """
    if config is None:
        config = load_config()

    value: Any = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
            if value is None:
                break
        else:
            value = None
            break

    if value is not None:
        return value

    env_key = "_".join(k.upper() for k in keys)
    env_value = os.environ.get(env_key)
    if env_value is not None:
        return env_value

    return default


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _as_mapping(value: Any, key: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigurationError(f"{key} must be an object, got {value!r}")
    return dict(value)


@dataclass(frozen=True)
class ComponentConfig:
    """Per-component settings overlaid on the manifest templates.

    Attributes:
        enabled: Whether the component should exist (optional; the operator
                 decides when unset)
        image: Container image override
        replicas: Deployment replica count override
        node_selector: Pod node selector
        tolerations: Pod tolerations
        resources: Container resource requests/limits
        verbosity: Log level passed to the component as ``--v``
    """

    enabled: Optional[bool] = None
    image: Optional[str] = None
    replicas: Optional[int] = None
    node_selector: Dict[str, str] = field(default_factory=dict)
    tolerations: List[Dict[str, Any]] = field(default_factory=list)
    resources: Dict[str, Any] = field(default_factory=dict)
    verbosity: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], prefix: str = "") -> "ComponentConfig":
        """Build a ComponentConfig, ignoring unknown keys.

        Raises:
            ConfigurationError: If a known key has the wrong type
        """
        data = _as_mapping(data, prefix or "component")
        kwargs: Dict[str, Any] = {}
        if data.get("enabled") is not None:
            kwargs["enabled"] = _as_bool(data["enabled"], f"{prefix}.enabled")
        if data.get("image") is not None:
            kwargs["image"] = str(data["image"])
        if data.get("replicas") is not None:
            replicas = _as_int(data["replicas"], f"{prefix}.replicas")
            if replicas < 1:
                raise ConfigurationError(f"{prefix}.replicas must be at least 1")
            kwargs["replicas"] = replicas
        if data.get("node_selector") is not None:
            kwargs["node_selector"] = _as_mapping(data["node_selector"], f"{prefix}.node_selector")
        if data.get("tolerations") is not None:
            if not isinstance(data["tolerations"], list):
                raise ConfigurationError(f"{prefix}.tolerations must be a list")
            kwargs["tolerations"] = list(data["tolerations"])
        if data.get("resources") is not None:
            kwargs["resources"] = _as_mapping(data["resources"], f"{prefix}.resources")
        if data.get("verbosity") is not None:
            kwargs["verbosity"] = _as_int(data["verbosity"], f"{prefix}.verbosity")
        return cls(**kwargs)


@dataclass(frozen=True)
class OperatorConfig:
    """Typed view of the operator configuration.

    Attributes:
        namespace: Namespace the monitoring components live in
        high_availability: Whether the cluster runs more than one control
                           plane replica; gates PodDisruptionBudgets
        validate_schema: Validate built-in manifests against the Kubernetes
                         OpenAPI schema before applying them
        kubernetes_version: Schema version used for validation
        metrics_server: metrics-server settings
        prometheus_adapter: prometheus-adapter settings
    """

    namespace: str = DEFAULT_NAMESPACE
    high_availability: bool = False
    validate_schema: bool = False
    kubernetes_version: str = DEFAULT_KUBERNETES_VERSION
    metrics_server: ComponentConfig = field(default_factory=ComponentConfig)
    prometheus_adapter: ComponentConfig = field(default_factory=ComponentConfig)

    @property
    def metrics_server_enabled(self) -> bool:
        return bool(self.metrics_server.enabled)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperatorConfig":
        """Build an OperatorConfig from a raw config dict.

        Top-level scalars fall back to environment variables (NAMESPACE,
        HIGH_AVAILABILITY, METRICS_SERVER_ENABLED, ...) via get_config_value.

        Raises:
            ConfigurationError: If a value has the wrong type
        """
        data = _as_mapping(data, "config")
        namespace = get_config_value(["namespace"], DEFAULT_NAMESPACE, config=data)
        high_availability = get_config_value(["high_availability"], False, config=data)
        validate_schema = get_config_value(["validate_schema"], False, config=data)
        kubernetes_version = get_config_value(
            ["kubernetes_version"], DEFAULT_KUBERNETES_VERSION, config=data
        )

        components = {}
        for key in ("metrics_server", "prometheus_adapter"):
            section = data.get(key)
            raw = _as_mapping(section, key) if section is not None else {}
            enabled = get_config_value([key, "enabled"], None, config=data)
            if enabled is not None:
                raw["enabled"] = enabled
            components[key] = ComponentConfig.from_dict(raw, prefix=key)

        return cls(
            namespace=str(namespace),
            high_availability=_as_bool(high_availability, "high_availability"),
            validate_schema=_as_bool(validate_schema, "validate_schema"),
            kubernetes_version=str(kubernetes_version),
            **components,
        )


def load_operator_config(config_path: str = "config.json") -> OperatorConfig:
    """Load config.json into an OperatorConfig (defaults if the file is missing)."""
    return OperatorConfig.from_dict(load_config(config_path))
