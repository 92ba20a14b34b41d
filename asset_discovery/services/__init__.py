# =============================================================================
# Discovery Services
# =============================================================================
# Service base class, the sequential pipeline, the shipped analyzers and the
# asset-type registry.
# =============================================================================

from .base import DiscoveryService, ServiceState
from .pipeline import FINAL_ANALYSIS_STEP, DiscoveryPipeline
from .analyzers import ColumnClassifierService, ColumnProfilerService
from .registry import SCHEMA_SCAN, DiscoveryServiceRegistry, schema_scan_connection

__all__ = [
    "DiscoveryService",
    "ServiceState",
    "DiscoveryPipeline",
    "FINAL_ANALYSIS_STEP",
    "ColumnClassifierService",
    "ColumnProfilerService",
    "DiscoveryServiceRegistry",
    "schema_scan_connection",
    "SCHEMA_SCAN",
]
