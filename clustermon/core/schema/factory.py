"""Factory protocol for desired-state object producers."""

from typing import Protocol

from clustermon.core.schema.asset import Asset, Produced


class Factory(Protocol):
    """Producer of desired-state objects.

    A factory is pure with respect to cluster state: given the same
    configuration it always produces the same objects. Factories must be
    safe to share between tasks running concurrently.

    Example:
        class StaticFactory:
            def produce(self, asset: Asset) -> Produced:
                if asset.optional:
                    return ABSENT
                return Present(build(asset))
    """

    def produce(self, asset: Asset) -> Produced:
        """Build the desired-state object for an asset.

        Args:
            asset: The asset to build

        Returns:
            Present(obj), or ABSENT for an optional asset that is not configured

        Raises:
            ConfigurationError: If the template or configuration is invalid
        """
        ...
