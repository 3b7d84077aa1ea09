"""Client protocol for applying objects to a cluster."""

from typing import Protocol

from clustermon.core.context import Context
from clustermon.core.schema.objects import DesiredObject


class Client(Protocol):
    """Idempotent cluster client.

    Both operations must check ``ctx`` before issuing a request and raise
    CancellationError when it is done. Clients must be safe to share
    between tasks running concurrently.
    """

    def create_or_update(self, ctx: Context, obj: DesiredObject) -> None:
        """Create the object, or update it in place if it already exists."""
        ...

    def delete(self, ctx: Context, obj: DesiredObject) -> None:
        """Delete the object. Deleting an absent object succeeds silently."""
        ...
