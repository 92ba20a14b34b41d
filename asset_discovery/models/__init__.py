# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the asset discovery engine.
# =============================================================================

"""
Data models for the asset discovery engine.

This library provides:
- DiscoveryReport: Per-request report and its RequestStatus lifecycle
- Annotation / DataField / DataFieldLink: Result graph elements
- Connection: Connector descriptor
- AuditLogRecord: Audit trail entries
- Configuration models
"""

# Report models
from .report import (
    RequestStatus,
    DiscoveryReport,
)

# Result graph models
from .annotation import (
    AnnotationType,
    AnnotationStatus,
    Annotation,
    AnnotationTypeDescription,
    REVIEWED_ANNOTATION_STATUSES,
)
from .data_field import (
    DataField,
    DataFieldLink,
    LinkDirection,
    RelatedDataField,
)

# Connector descriptors
from .connection import Connection

# Audit models
from .activity import (
    AuditAction,
    AuditLogRecord,
)

# Configuration models
from .config import (
    MongoSettings,
    DiscoveryEngineSettings,
)

__all__ = [
    # Report models
    "RequestStatus",
    "DiscoveryReport",
    # Result graph models
    "AnnotationType",
    "AnnotationStatus",
    "Annotation",
    "AnnotationTypeDescription",
    "REVIEWED_ANNOTATION_STATUSES",
    "DataField",
    "DataFieldLink",
    "LinkDirection",
    "RelatedDataField",
    # Connector descriptors
    "Connection",
    # Audit models
    "AuditAction",
    "AuditLogRecord",
    # Configuration models
    "MongoSettings",
    "DiscoveryEngineSettings",
]
