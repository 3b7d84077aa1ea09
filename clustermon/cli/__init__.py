"""Command-line interface for clustermon."""
