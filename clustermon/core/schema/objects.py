"""DesiredObject protocol for the objects tasks hand to clients."""

from typing import Any, Protocol

from clustermon.core.schema.kinds import ObjectIdentity


class DesiredObject(Protocol):
    """Domain-agnostic desired-state object interface.

    Tasks treat desired objects as opaque values: they only need the
    identity (for error messages and kind checks) and pass the object on to
    the client untouched.
    """

    @property
    def identity(self) -> ObjectIdentity:
        ...

    def to_serializable(self) -> Any:
        """Convert object to JSON-serializable format.

        Returns:
            JSON-serializable representation of the object
        """
        ...
