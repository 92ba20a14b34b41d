"""MongoDB result graph store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import cached_property
from typing import Any, ClassVar, Iterator, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from asset_discovery.exceptions import PropertyServerError
from asset_discovery.models import DiscoveryEngineSettings, MongoSettings
from asset_discovery.stores.base import ResultGraphStore

__all__ = ["MongoResultGraphStore"]

logger = logging.getLogger(__name__)


class MongoResultGraphStore(ResultGraphStore):
    """
    Result graph store persisted in MongoDB.

    One collection per element kind; the creation sequence lives in a
    ``counters`` collection and is advanced with an atomic ``$inc``.
    Driver failures surface as PropertyServerError.
    """

    COUNTERS: ClassVar[str] = "counters"

    def __init__(
        self,
        connection_string: str,
        database: str = "asset_discovery",
        *,
        max_page_size: int = 500,
        strict_annotation_types: bool = False,
    ) -> None:
        super().__init__(max_page_size=max_page_size, strict_annotation_types=strict_annotation_types)
        self.connection_string = connection_string
        self.database = database

    @classmethod
    def from_settings(
        cls,
        settings: MongoSettings,
        engine_settings: Optional[DiscoveryEngineSettings] = None,
        **kwargs: Any,
    ) -> "MongoResultGraphStore":
        """Build a store from settings; the page size limit comes from the engine settings if given."""
        if engine_settings is not None:
            kwargs.setdefault("max_page_size", engine_settings.max_page_size)
        return cls(settings.connection_string, settings.database, **kwargs)

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    @contextmanager
    def _translate_errors(self, action: str, collection: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as e:
            logger.error(f"MongoDB {action} on '{collection}' failed: {e}")
            raise PropertyServerError(
                f"MongoDB {action} on '{collection}' failed: {e}",
                operation=action,
                context={"collection": collection},
            ) from e

    def ensure_indexes(self) -> None:
        """Create the lookup indexes used by the paged queries."""
        with self._translate_errors("create_index", self.REPORTS):
            for name in (self.REPORTS, self.ANNOTATIONS, self.DATA_FIELDS, self.LINKS):
                collection = self._get_collection(name)
                collection.create_index("guid", unique=True)
                collection.create_index("seq")
            self._get_collection(self.REPORTS).create_index("asset_guid")
            self._get_collection(self.ANNOTATIONS).create_index([("report_guid", ASCENDING), ("seq", ASCENDING)])
            self._get_collection(self.ANNOTATIONS).create_index("parent_annotation_guid")
            self._get_collection(self.ANNOTATIONS).create_index("data_field_guid")
            self._get_collection(self.DATA_FIELDS).create_index([("report_guid", ASCENDING), ("seq", ASCENDING)])
            self._get_collection(self.DATA_FIELDS).create_index("parent_data_field_guid")
            self._get_collection(self.LINKS).create_index("from_data_field_guid")
            self._get_collection(self.LINKS).create_index("to_data_field_guid")
            self._get_collection(self.ANNOTATION_TYPES).create_index("type_name", unique=True)

    # ------------------------------------------------------------------
    # Document primitives
    # ------------------------------------------------------------------

    def _insert(self, collection: str, document: dict[str, Any]) -> None:
        with self._translate_errors("insert", collection):
            # insert_one adds _id to the dict it is given
            self._get_collection(collection).insert_one(dict(document))

    def _find_one(self, collection: str, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        with self._translate_errors("find", collection):
            return self._get_collection(collection).find_one(query, projection={"_id": 0})

    def _find(
        self, collection: str, query: dict[str, Any], offset: int = 0, limit: int = 0
    ) -> list[dict[str, Any]]:
        with self._translate_errors("find", collection):
            cursor = (
                self._get_collection(collection)
                .find(query, projection={"_id": 0})
                .sort("seq", ASCENDING)
                .skip(offset)
            )
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

    def _count(self, collection: str, query: dict[str, Any]) -> int:
        with self._translate_errors("count", collection):
            return self._get_collection(collection).count_documents(query)

    def _update(self, collection: str, query: dict[str, Any], fields: dict[str, Any]) -> int:
        with self._translate_errors("update", collection):
            result = self._get_collection(collection).update_one(query, {"$set": fields})
            return result.matched_count

    def _delete(self, collection: str, query: dict[str, Any]) -> int:
        with self._translate_errors("delete", collection):
            return self._get_collection(collection).delete_many(query).deleted_count

    def _next_sequence(self) -> int:
        with self._translate_errors("increment", self.COUNTERS):
            counter = self._get_collection(self.COUNTERS).find_one_and_update(
                {"_id": self.SEQUENCE},
                {"$inc": {"value": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
            return int(counter["value"])
