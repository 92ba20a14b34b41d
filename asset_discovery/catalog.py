# =============================================================================
# Asset Catalog
# =============================================================================
# Resolves asset GUIDs to the Connection used to read the asset's data.
# =============================================================================

import logging
import threading
from abc import ABC, abstractmethod
from functools import cached_property
from typing import ClassVar, Optional

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from asset_discovery.exceptions import InvalidParameterError, PropertyServerError
from asset_discovery.models import Connection, MongoSettings

__all__ = ["AssetCatalog", "InMemoryAssetCatalog", "MongoAssetCatalog"]

logger = logging.getLogger(__name__)


class AssetCatalog(ABC):
    """Lookup of asset GUID to connection descriptor."""

    @abstractmethod
    def connection_for_asset(self, user_id: str, asset_guid: str) -> Optional[Connection]:
        """Return the asset's connection, or None if the asset has none."""

    @abstractmethod
    def register_asset(self, asset_guid: str, connection: Connection) -> None:
        """Associate an asset with a connection, replacing any previous one."""


class InMemoryAssetCatalog(AssetCatalog):
    def __init__(self, assets: Optional[dict[str, Connection]] = None) -> None:
        self._lock = threading.Lock()
        self._assets: dict[str, Connection] = dict(assets or {})

    def connection_for_asset(self, user_id: str, asset_guid: str) -> Optional[Connection]:
        with self._lock:
            return self._assets.get(asset_guid)

    def register_asset(self, asset_guid: str, connection: Connection) -> None:
        with self._lock:
            self._assets[asset_guid] = connection


class MongoAssetCatalog(AssetCatalog):
    """
    Asset catalog stored in the ``asset_connections`` collection.

    Each document holds ``asset_guid`` and the serialized ``connection``.
    """

    ASSET_CONNECTIONS: ClassVar[str] = "asset_connections"

    def __init__(self, connection_string: str, database: str = "asset_discovery") -> None:
        self.connection_string = connection_string
        self.database = database

    @classmethod
    def from_settings(cls, settings: MongoSettings) -> "MongoAssetCatalog":
        return cls(settings.connection_string, settings.database)

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_collection(self) -> Collection:
        return self._client[self.database][self.ASSET_CONNECTIONS]

    def connection_for_asset(self, user_id: str, asset_guid: str) -> Optional[Connection]:
        try:
            document = self._get_collection().find_one({"asset_guid": asset_guid})
        except PyMongoError as e:
            raise PropertyServerError(
                f"Failed to look up connection for asset '{asset_guid}': {e}",
                operation="connection_for_asset",
                context={"asset_guid": asset_guid},
            ) from e

        if not document:
            return None
        try:
            return Connection.model_validate(document["connection"])
        except (KeyError, ValidationError) as e:
            raise InvalidParameterError(
                f"Stored connection for asset '{asset_guid}' is invalid: {e}",
                operation="connection_for_asset",
                context={"asset_guid": asset_guid},
            ) from e

    def register_asset(self, asset_guid: str, connection: Connection) -> None:
        try:
            self._get_collection().update_one(
                {"asset_guid": asset_guid},
                {"$set": {"asset_guid": asset_guid, "connection": connection.model_dump()}},
                upsert=True,
            )
        except PyMongoError as e:
            raise PropertyServerError(
                f"Failed to register asset '{asset_guid}': {e}",
                operation="register_asset",
                context={"asset_guid": asset_guid},
            ) from e
        logger.info(f"Registered asset {asset_guid} with connection {connection.qualified_name}")
