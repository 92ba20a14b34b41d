# =============================================================================
# Audit Log Model
# =============================================================================
# Defines the AuditLogRecord model for tracking discovery actions in MongoDB.
# =============================================================================

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


__all__ = ["AuditLogRecord", "AuditAction"]


AuditAction = Literal[
    "discovery_requested",
    "discovery_started",
    "discovery_complete",
    "discovery_failed",
    "discovery_disconnected",
    "service_message",
]


class AuditLogRecord(BaseModel):
    """
    Audit log document model for the discovery audit trail.

    Attributes:
        timestamp: When the action occurred (UTC)
        user: Caller or engine identifier that performed the action
        asset_guid: Asset the message is about
        discovery_service: Name of the discovery service reporting the message
        action: Type of action recorded
        message: Free-form diagnostic message
        details: Additional context (report GUID, status, ...)
    """

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the action occurred (UTC)",
    )
    user: str = Field(..., description="Caller or engine identifier")
    asset_guid: str = Field(..., description="Asset the message is about")
    discovery_service: str = Field(..., description="Reporting discovery service")
    action: AuditAction = Field("service_message", description="Recorded action")
    message: str = Field("", description="Diagnostic message")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context about the action",
    )
