"""Resolve an asset GUID to a connector for the asset's data."""

import logging
import threading
from typing import Optional

from asset_discovery.catalog import AssetCatalog
from asset_discovery.connectors import Connector, ConnectorBroker
from asset_discovery.exceptions import (
    ConnectorError,
    DiscoveryError,
    InvalidConnectionError,
    InvalidParameterError,
    PropertyServerError,
)
from asset_discovery.models import Connection

__all__ = ["AssetResolver"]

logger = logging.getLogger(__name__)


class AssetResolver:
    """
    Per-request access to the asset being analysed.

    The connection is looked up in the catalog once and cached for the
    lifetime of the request; every ``connector_for_asset`` call builds a new
    connector from that cached connection. Connectors handed out are
    disconnected together by ``disconnect``.
    """

    def __init__(
        self,
        user_id: str,
        asset_guid: str,
        catalog: AssetCatalog,
        broker: ConnectorBroker,
    ) -> None:
        self.user_id = user_id
        self.asset_guid = asset_guid
        self._catalog = catalog
        self._broker = broker
        self._lock = threading.Lock()
        self._connection: Optional[Connection] = None
        self._connectors: list[Connector] = []

    def connection_for_asset(self) -> Connection:
        """
        Return the asset's connection, fetching it from the catalog on first use.

        Raises:
            InvalidParameterError: The asset has no usable connection
            PropertyServerError: The catalog lookup failed
        """
        with self._lock:
            if self._connection is not None:
                return self._connection

            try:
                connection = self._catalog.connection_for_asset(self.user_id, self.asset_guid)
            except InvalidParameterError:
                raise
            except DiscoveryError as e:
                raise PropertyServerError(
                    f"Catalog lookup failed for asset '{self.asset_guid}': {e}",
                    operation="connection_for_asset",
                    context={"asset_guid": self.asset_guid},
                ) from e

            if not isinstance(connection, Connection):
                raise InvalidParameterError(
                    f"Asset '{self.asset_guid}' has no connection",
                    operation="connection_for_asset",
                    context={"asset_guid": self.asset_guid},
                )

            logger.debug(f"Resolved asset {self.asset_guid} to {connection.qualified_name}")
            self._connection = connection
            return connection

    def connector_for_asset(self) -> Connector:
        """
        Create a started connector for the asset.

        Raises:
            InvalidParameterError: The asset's connection is missing or unusable
            PropertyServerError: The connector could not be instantiated
        """
        connection = self.connection_for_asset()
        try:
            connector = self._broker.get_connector(connection)
            connector.start()
        except InvalidConnectionError as e:
            raise InvalidParameterError(
                f"Asset '{self.asset_guid}' has an invalid connection: {e}",
                operation="connector_for_asset",
                context={"asset_guid": self.asset_guid, "connection": connection.qualified_name},
            ) from e
        except ConnectorError as e:
            raise PropertyServerError(
                f"Cannot create connector for asset '{self.asset_guid}': {e}",
                operation="connector_for_asset",
                context={"asset_guid": self.asset_guid, "connection": connection.qualified_name},
            ) from e
        except Exception as e:
            raise PropertyServerError(
                f"Connector for asset '{self.asset_guid}' failed to start: {type(e).__name__}: {e}",
                operation="connector_for_asset",
                context={"asset_guid": self.asset_guid, "connection": connection.qualified_name},
            ) from e

        with self._lock:
            self._connectors.append(connector)
        return connector

    def disconnect(self) -> None:
        """Disconnect every connector handed out by this resolver."""
        with self._lock:
            connectors, self._connectors = self._connectors, []
        for connector in connectors:
            connector.disconnect()
