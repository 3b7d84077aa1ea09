"""
clustermon: reconciliation tasks for the cluster monitoring stack

Each task drives the Kubernetes resources of one monitoring component to
their desired state, applying them in dependency order and retiring the
resources of the component it replaces.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
