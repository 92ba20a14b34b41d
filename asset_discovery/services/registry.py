# =============================================================================
# Discovery Service Registry
# =============================================================================
# Asset-type lookup for the discovery service connection an engine runs.
# =============================================================================

import threading
from typing import Optional

from asset_discovery.models import Connection

__all__ = ["DiscoveryServiceRegistry", "schema_scan_connection", "SCHEMA_SCAN"]

SCHEMA_SCAN = "schema-scan"


def schema_scan_connection() -> Connection:
    """Pipeline connection running the column classifier, then the column profiler."""
    return Connection(
        qualified_name="discovery:schema-scan",
        display_name="Schema Scan",
        connector_provider="DiscoveryPipeline",
        embedded_connections=[
            Connection(
                qualified_name="discovery:schema-scan:classifier",
                display_name="Column Classifier",
                connector_provider="ColumnClassifierService",
            ),
            Connection(
                qualified_name="discovery:schema-scan:profiler",
                display_name="Column Profiler",
                connector_provider="ColumnProfilerService",
            ),
        ],
    )


class DiscoveryServiceRegistry:
    """
    Maps asset (request) types to discovery service connections.

    Instances are callable, so a registry can be handed to the engine as its
    ``resolve_service`` lookup.
    """

    def __init__(self, services: Optional[dict[str, Connection]] = None) -> None:
        self._lock = threading.Lock()
        self._services: dict[str, Connection] = dict(services or {})

    @classmethod
    def with_defaults(cls) -> "DiscoveryServiceRegistry":
        return cls({SCHEMA_SCAN: schema_scan_connection()})

    def register(self, asset_type: str, connection: Connection) -> None:
        if not asset_type or not asset_type.strip():
            raise ValueError("asset_type cannot be empty")
        with self._lock:
            self._services[asset_type.strip()] = connection

    def unregister(self, asset_type: str) -> None:
        with self._lock:
            self._services.pop(asset_type, None)

    def asset_types(self) -> list[str]:
        with self._lock:
            return sorted(self._services)

    def resolve_service(self, asset_type: str) -> Optional[Connection]:
        with self._lock:
            return self._services.get(asset_type)

    __call__ = resolve_service
