"""
Core component-agnostic pieces of clustermon.

This package contains the schemas and protocols tasks are written against,
the cancellation context, errors, configuration, and the task machinery.
"""

__all__ = []
