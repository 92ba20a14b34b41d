# =============================================================================
# Connector Broker
# =============================================================================
# Provider-name lookup that turns Connection descriptors into live connectors.
# =============================================================================

import logging
import threading
from typing import Optional, Type

from asset_discovery.connectors.base import Connector
from asset_discovery.exceptions import InvalidConnectionError, InvalidConnectorError
from asset_discovery.models import Connection

__all__ = ["ConnectorBroker", "default_broker"]

logger = logging.getLogger(__name__)


class ConnectorBroker:
    """
    Registry of connector providers keyed by provider name.

    Connectors are instantiated fresh on every call (no shared state), with
    the broker passed along so composite connectors can build their parts.
    """

    def __init__(self, providers: Optional[dict[str, Type[Connector]]] = None) -> None:
        self._lock = threading.Lock()
        self._providers: dict[str, Type[Connector]] = {}
        for name, provider in (providers or {}).items():
            self.register(name, provider)

    def register(self, provider_name: str, provider: Type[Connector]) -> None:
        if not provider_name or not provider_name.strip():
            raise ValueError("provider_name cannot be empty")
        if not (isinstance(provider, type) and issubclass(provider, Connector)):
            raise TypeError(f"Provider '{provider_name}' must be a Connector subclass")
        with self._lock:
            self._providers[provider_name.strip()] = provider

    def providers(self) -> list[str]:
        with self._lock:
            return sorted(self._providers)

    def get_connector(self, connection: Connection) -> Connector:
        """
        Create a connector for a connection descriptor.

        Raises:
            InvalidConnectionError: Descriptor is not a Connection or names an unknown provider
            InvalidConnectorError: Provider failed to initialize
        """
        if not isinstance(connection, Connection):
            raise InvalidConnectionError(
                f"Expected a Connection, got {type(connection).__name__}",
                operation="get_connector",
            )

        with self._lock:
            provider = self._providers.get(connection.connector_provider)
        if provider is None:
            raise InvalidConnectionError(
                f"Unknown connector provider '{connection.connector_provider}'",
                operation="get_connector",
                context={"connection": connection.qualified_name},
            )

        try:
            connector = provider(connection, broker=self)
        except Exception as e:
            raise InvalidConnectorError(
                f"Connector provider '{connection.connector_provider}' failed to initialize: {e}",
                operation="get_connector",
                context={"connection": connection.qualified_name},
            ) from e

        logger.debug(f"Created {type(connector).__name__} for '{connection.qualified_name}'")
        return connector


def default_broker() -> ConnectorBroker:
    """Broker with the connectors and discovery services shipped in this package."""
    from asset_discovery.connectors.tabular import CSVFileConnector
    from asset_discovery.services.analyzers import ColumnClassifierService, ColumnProfilerService
    from asset_discovery.services.pipeline import DiscoveryPipeline

    return ConnectorBroker(
        {
            "CSVFileConnector": CSVFileConnector,
            "DiscoveryPipeline": DiscoveryPipeline,
            "ColumnClassifierService": ColumnClassifierService,
            "ColumnProfilerService": ColumnProfilerService,
        }
    )
