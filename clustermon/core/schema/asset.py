"""Assets, factory products and component resource tables.

An Asset names one desired-state object a factory knows how to build. A
ComponentResources value lists, in dependency order, the assets a component
applies and the assets it removes when it is retired. Tasks only ever read
these tables; they are shared between components as plain values.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from clustermon.core.schema.kinds import ObjectIdentity, ResourceKind


@dataclass(frozen=True)
class Asset:
    """One factory product.

    Attributes:
        component: Owning component, e.g. "metrics-server"
        kind: Resource kind of the produced object
        template: Template file relative to the component's manifest directory
        name: Qualifier distinguishing assets of the same kind (optional)
        optional: Whether the factory may legitimately produce nothing
    """

    component: str
    kind: ResourceKind
    template: str
    name: Optional[str] = None
    optional: bool = False

    def __str__(self) -> str:
        if self.name:
            return f"{self.component} {self.name} {self.kind.kind}"
        return f"{self.component} {self.kind.kind}"


@dataclass(frozen=True)
class Present:
    """A produced desired-state object."""

    obj: Any


class Absent:
    """Marker for an optional asset that is not configured."""

    _instance: Optional["Absent"] = None

    def __new__(cls) -> "Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent()

Produced = Union[Present, Absent]


@dataclass(frozen=True)
class ComponentResources:
    """Resource table of one component.

    Attributes:
        component: Component name
        apply_order: Assets to create or update, lowest dependency tier first
        retire_order: Assets to delete when another component replaces this one
        residuals: ``(kind, name)`` pairs deleted by identity in the task's
                   namespace, without consulting the factory
    """

    component: str
    apply_order: Tuple[Asset, ...]
    retire_order: Tuple[Asset, ...] = ()
    residuals: Tuple[Tuple[ResourceKind, str], ...] = ()

    def residual_identities(self, namespace: str) -> List[ObjectIdentity]:
        return [
            ObjectIdentity(kind, name, namespace if kind.namespaced else None)
            for kind, name in self.residuals
        ]


def check_apply_order(assets: Sequence[Asset]) -> None:
    """Verify that assets never step down a dependency tier.

    Identity and permission objects come before networking and config,
    which come before the workload, which comes before the monitoring and
    registration objects that reference it.

    Raises:
        ValueError: If an asset is ordered after one of a higher tier
    """
    highest: Optional[Asset] = None
    for asset in assets:
        if highest is not None and asset.kind.tier < highest.kind.tier:
            raise ValueError(
                f"{asset} must be applied before {highest}: "
                f"tier {asset.kind.tier} < {highest.kind.tier}"
            )
        if highest is None or asset.kind.tier > highest.kind.tier:
            highest = asset
