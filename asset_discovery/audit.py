# =============================================================================
# Audit Log - Discovery Audit Trail
# =============================================================================
# Fire-and-forget sink for audit messages raised by the engine and by
# discovery services. A failing sink is logged, never raised.
# =============================================================================

import logging
from abc import ABC, abstractmethod
from functools import cached_property
from typing import Any, ClassVar, Optional

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection

from asset_discovery.models import AuditAction, AuditLogRecord, MongoSettings

__all__ = ["AuditLog", "LoggingAuditLog", "MongoAuditLog"]

logger = logging.getLogger(__name__)


class AuditLog(ABC):
    """Audit sink. ``log_asset_audit_message`` never raises."""

    def log_asset_audit_message(
        self,
        user_id: str,
        asset_guid: str,
        discovery_service: str,
        message: str,
        *,
        action: AuditAction = "service_message",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record an audit message about an asset."""
        try:
            record = AuditLogRecord(
                user=user_id,
                asset_guid=asset_guid,
                discovery_service=discovery_service,
                action=action,
                message=message,
                details=details or {},
            )
            self._write(record)
        except Exception as e:
            logger.warning(f"Failed to write audit message for asset {asset_guid}: {e}")

    @abstractmethod
    def _write(self, record: AuditLogRecord) -> None:
        """Persist one record."""


class LoggingAuditLog(AuditLog):
    """Writes audit records to the ``asset_discovery.audit`` logger."""

    def _write(self, record: AuditLogRecord) -> None:
        logger.info(
            f"[{record.action}] asset={record.asset_guid} "
            f"service={record.discovery_service} user={record.user}: {record.message}"
        )


class MongoAuditLog(AuditLog):
    """Audit records kept in the ``audit_logs`` collection."""

    AUDIT_LOGS: ClassVar[str] = "audit_logs"

    def __init__(self, connection_string: str, database: str = "asset_discovery") -> None:
        self.connection_string = connection_string
        self.database = database

    @classmethod
    def from_settings(cls, settings: MongoSettings) -> "MongoAuditLog":
        return cls(settings.connection_string, settings.database)

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_collection(self) -> Collection:
        return self._client[self.database][self.AUDIT_LOGS]

    def _write(self, record: AuditLogRecord) -> None:
        self._get_collection().insert_one(record.model_dump())

    def get_recent_messages(
        self,
        asset_guid: Optional[str] = None,
        action: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[AuditLogRecord]:
        """
        Get recent audit records, newest first.

        Args:
            asset_guid: Optional filter by asset
            action: Optional filter by action
            offset: Number of records to skip (default: 0)
            limit: Maximum number of records to return (default: 50)
        """
        query: dict[str, Any] = {}
        if asset_guid is not None:
            query["asset_guid"] = asset_guid
        if action is not None:
            query["action"] = action

        cursor = (
            self._get_collection()
            .find(query, projection={"_id": 0})
            .sort("timestamp", DESCENDING)
            .skip(offset)
            .limit(limit)
        )
        return [AuditLogRecord.model_validate(doc) for doc in cursor]
