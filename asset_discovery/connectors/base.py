# =============================================================================
# Connector Base Class
# =============================================================================
# Every pluggable component built from a Connection (asset connectors,
# discovery services, pipelines) derives from Connector.
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from asset_discovery.models import Connection

if TYPE_CHECKING:
    from asset_discovery.connectors.broker import ConnectorBroker

__all__ = ["Connector"]


class Connector:
    """
    Base class for components created by the connector broker.

    Attributes:
        connection: Descriptor the connector was created from
        broker: Broker that created the connector, used to build further
            connectors (e.g. embedded services of a pipeline)
    """

    def __init__(self, connection: Connection, broker: Optional["ConnectorBroker"] = None) -> None:
        self.connection = connection
        self.broker = broker
        self._active = False

    @property
    def display_name(self) -> str:
        return self.connection.name

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True

    def disconnect(self) -> None:
        """Release held resources. Safe to call more than once."""
        self._active = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection.qualified_name!r})"
