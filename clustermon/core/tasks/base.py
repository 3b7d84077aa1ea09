"""Reconciliation task base class.

A task drives the resources of one component toward their desired state:

1. If the task is disabled, do nothing.
2. For each asset of the component's apply order: produce the desired
   object and create or update it.
3. For each retired component: produce each asset of its retire order and
   delete it, then delete its residual objects by identity.

The first failure aborts the run. Nothing is retried here; the next
reconciliation cycle re-runs everything and relies on idempotence.
"""

import logging
from typing import Any, Optional, Tuple

from clustermon.core.context import Context
from clustermon.core.errors import (
    CancellationError,
    ConfigurationError,
    ReconciliationError,
)
from clustermon.core.schema.asset import Asset, ComponentResources, Present
from clustermon.core.schema.client import Client
from clustermon.core.schema.factory import Factory
from clustermon.core.schema.objects import DesiredObject

logger = logging.getLogger(__name__)

# Raised by a factory or client, these signal a bug, not a cluster or
# configuration problem, and propagate unwrapped.
_PROGRAMMING_ERRORS = (AttributeError, KeyError, TypeError)

STEP_INITIALIZING = "initializing"
STEP_RECONCILING = "reconciling"
STEP_DELETING = "deleting"


class Task:
    """One reconciliation unit for a single component.

    Subclasses declare the component's resource table in ``resources`` and
    the tables of the components they replace in ``retires``.

    Attributes:
        name: Task name used in logs and outcomes
        resources: Resource table applied when the task is enabled
        retires: Resource tables removed after a successful apply
    """

    name = "task"
    resources: ComponentResources = ComponentResources(component="task", apply_order=())
    retires: Tuple[ComponentResources, ...] = ()

    def __init__(
        self,
        ctx: Context,
        namespace: str,
        client: Client,
        enabled: bool,
        factory: Factory,
        config: Any = None,
    ) -> None:
        self.ctx = ctx
        self.namespace = namespace
        self.client = client
        self.enabled = enabled
        self.factory = factory
        self.config = config

    def run(self, ctx: Optional[Context] = None) -> None:
        """Run one reconciliation cycle.

        Args:
            ctx: Context for this cycle (defaults to the construction context)

        Raises:
            ConfigurationError: If a desired object could not be produced
            ReconciliationError: If an apply or delete failed
            CancellationError: If the context was cancelled mid-sequence
        """
        if ctx is None:
            ctx = self.ctx
        if not self.enabled:
            logger.debug(f"{self.name} is disabled, skipping")
            return
        self.create(ctx)

    def create(self, ctx: Context) -> None:
        logger.info(f"Reconciling {self.resources.component}")
        for asset in self.resources.apply_order:
            obj = self._produce(asset)
            if obj is None:
                continue
            self._call(ctx, STEP_RECONCILING, obj)

        for retired in self.retires:
            self.remove_retired_resources(ctx, retired)

    def remove_retired_resources(self, ctx: Context, retired: ComponentResources) -> None:
        """Delete the objects of a component this task replaces.

        Runs whether or not the retired component was ever installed:
        deleting an absent object is a no-op.
        """
        logger.info(f"Removing retired {retired.component} resources")
        for asset in retired.retire_order:
            obj = self._produce(asset)
            if obj is None:
                continue
            self._call(ctx, STEP_DELETING, obj)

        # Residuals may no longer have a template, so they are deleted by identity.
        for identity in retired.residual_identities(self.namespace):
            self._call(ctx, STEP_DELETING, identity)

    def _produce(self, asset: Asset) -> Optional[DesiredObject]:
        """Produce the object for an asset, or None if it is legitimately absent."""
        try:
            produced = self.factory.produce(asset)
        except _PROGRAMMING_ERRORS:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"{STEP_INITIALIZING} {asset} failed: {e}",
                step=STEP_INITIALIZING,
                identity=asset,
            ) from e

        if isinstance(produced, Present):
            obj = produced.obj
            if obj.identity.kind is not asset.kind:
                raise TypeError(
                    f"factory produced {obj.identity.kind.kind} for {asset}"
                )
            return obj

        if not asset.optional:
            raise ConfigurationError(
                f"{STEP_INITIALIZING} {asset} failed: required object is absent",
                step=STEP_INITIALIZING,
                identity=asset,
            )
        logger.debug(f"{asset} is not configured, skipping")
        return None

    def _call(self, ctx: Context, step: str, obj: DesiredObject) -> None:
        identity = obj.identity
        try:
            if step == STEP_DELETING:
                self.client.delete(ctx, obj)
            else:
                self.client.create_or_update(ctx, obj)
        except CancellationError as e:
            raise CancellationError(
                f"{step} {identity} failed: {e}", step=step, identity=identity
            ) from e
        except _PROGRAMMING_ERRORS:
            raise
        except Exception as e:
            logger.error(f"{step} {identity} failed: {e}")
            raise ReconciliationError(
                f"{step} {identity} failed: {e}", step=step, identity=identity
            ) from e
        logger.info(f"{'Deleted' if step == STEP_DELETING else 'Reconciled'} {identity}")
