"""Kubernetes (K8s) domain adapter for clustermon.

This module provides K8s-specific implementations for clustermon's
reconciliation tasks:
- KubeObject: A single K8s manifest as a desired-state object
- ManifestFactory: Builds component manifests from packaged YAML templates
- KubeClient / RecordingClient: Live and in-memory cluster clients
- MetricsServerTask / PrometheusAdapterTask: The component tasks
"""
