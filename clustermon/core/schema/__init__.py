"""
Core schema definitions for kinds, assets, desired objects, factories and clients.

These domain-agnostic protocols and dataclasses form the contract between
reconciliation tasks and their collaborators.
"""

from clustermon.core.schema.asset import (
    ABSENT,
    Absent,
    Asset,
    ComponentResources,
    Present,
    Produced,
    check_apply_order,
)
from clustermon.core.schema.client import Client
from clustermon.core.schema.factory import Factory
from clustermon.core.schema.kinds import ObjectIdentity, ResourceKind
from clustermon.core.schema.objects import DesiredObject

__all__ = [
    "ABSENT",
    "Absent",
    "Asset",
    "ComponentResources",
    "Present",
    "Produced",
    "check_apply_order",
    "Client",
    "Factory",
    "ObjectIdentity",
    "ResourceKind",
    "DesiredObject",
]
