# =============================================================================
# Asset Discovery
# =============================================================================
# Pluggable discovery pipelines that analyse data assets and record their
# findings as a linked result graph (annotations and data fields) in a
# discovery report.
# =============================================================================

from asset_discovery.asset_resolver import AssetResolver
from asset_discovery.audit import AuditLog, LoggingAuditLog, MongoAuditLog
from asset_discovery.catalog import AssetCatalog, InMemoryAssetCatalog, MongoAssetCatalog
from asset_discovery.connectors import ConnectorBroker, default_broker
from asset_discovery.context import DiscoveryAnnotationStore, DiscoveryContext
from asset_discovery.engine import DiscoveryEngine
from asset_discovery.services import (
    DiscoveryPipeline,
    DiscoveryService,
    DiscoveryServiceRegistry,
)
from asset_discovery.stores import (
    InMemoryResultGraphStore,
    MongoResultGraphStore,
    ResultGraphStore,
)

__version__ = "0.1.0"

__all__ = [
    "AssetResolver",
    "AuditLog",
    "LoggingAuditLog",
    "MongoAuditLog",
    "AssetCatalog",
    "InMemoryAssetCatalog",
    "MongoAssetCatalog",
    "ConnectorBroker",
    "default_broker",
    "DiscoveryAnnotationStore",
    "DiscoveryContext",
    "DiscoveryEngine",
    "DiscoveryPipeline",
    "DiscoveryService",
    "DiscoveryServiceRegistry",
    "InMemoryResultGraphStore",
    "MongoResultGraphStore",
    "ResultGraphStore",
]
