# =============================================================================
# Discovery Report Model
# =============================================================================
# Defines the DiscoveryReport model and its request status lifecycle:
# - RequestStatus: WAITING -> ACTIVATING -> IN_PROGRESS -> (WAITING_TO_COMPLETE)
#   -> COMPLETE | FAILED -> DISCONNECTED
#   (pipelines move to WAITING_TO_COMPLETE once their embedded services finish)
# - DiscoveryReport: per-request container anchoring annotations and data fields
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

__all__ = ["RequestStatus", "DiscoveryReport"]


class RequestStatus(str, Enum):
    """Lifecycle status of a discovery request and its report."""

    WAITING = "waiting"
    ACTIVATING = "activating"
    IN_PROGRESS = "in_progress"
    WAITING_TO_COMPLETE = "waiting_to_complete"
    COMPLETE = "complete"
    FAILED = "failed"
    DISCONNECTED = "disconnected"
    OTHER = "other"

    @property
    def rank(self) -> Optional[int]:
        """Position in the lifecycle; None for OTHER, which is not a lifecycle step."""
        return _STATUS_RANK.get(self)

    @property
    def is_terminal(self) -> bool:
        """True once the service has returned or thrown."""
        return self in (RequestStatus.COMPLETE, RequestStatus.FAILED, RequestStatus.DISCONNECTED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal and self is not RequestStatus.OTHER

    def can_transition_to(self, new_status: "RequestStatus") -> bool:
        """
        Check whether moving from this status to ``new_status`` is a forward step.

        Re-setting the current status is allowed (no-op). COMPLETE and FAILED
        share a rank, so neither can replace the other.
        """
        if new_status is self:
            return True
        old_rank = self.rank
        new_rank = new_status.rank
        if old_rank is None or new_rank is None:
            return False
        return new_rank > old_rank


_STATUS_RANK = {
    RequestStatus.WAITING: 0,
    RequestStatus.ACTIVATING: 1,
    RequestStatus.IN_PROGRESS: 2,
    RequestStatus.WAITING_TO_COMPLETE: 3,
    RequestStatus.COMPLETE: 4,
    RequestStatus.FAILED: 4,
    RequestStatus.DISCONNECTED: 5,
}


class DiscoveryReport(BaseModel):
    """
    Discovery report document.

    One report is created per discovery request; the report GUID doubles as
    the request identifier returned by the engine.

    Attributes:
        guid: Report GUID (assigned by the store)
        qualified_name: Unique name of the report
        display_name: Short name of the report
        description: Description of the report
        creation_date: When the request was accepted (UTC)
        asset_guid: GUID of the asset being analysed
        asset_type: Request type used to select the discovery service
        user_id: Caller that requested the discovery
        discovery_engine_guid: Engine running the request
        discovery_service: Qualified name of the top-level service connection
        analysis_parameters: Parameters passed to the discovery service
        requested_annotation_types: Annotation type filter (None = all)
        discovery_request_status: Current lifecycle status
        analysis_step: Label of the analysis step currently running
        error_message: Failure details when the request FAILED
        completion_date: When the request reached a terminal status
        additional_properties: Free-form string properties
    """

    guid: Optional[str] = Field(None, description="Report GUID (store-assigned)")
    qualified_name: str = Field(..., min_length=1, description="Unique report name")
    display_name: str = Field("", description="Short report name")
    description: str = Field("", description="Report description")
    creation_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Request acceptance timestamp",
    )
    asset_guid: str = Field(..., min_length=1, description="Asset being analysed")
    asset_type: Optional[str] = Field(None, description="Request type")
    user_id: Optional[str] = Field(None, description="Requesting caller")
    discovery_engine_guid: Optional[str] = Field(None, description="Engine GUID")
    discovery_service: Optional[str] = Field(
        None, description="Qualified name of the discovery service connection"
    )
    analysis_parameters: dict[str, str] = Field(default_factory=dict)
    requested_annotation_types: Optional[list[str]] = Field(
        None, description="Requested annotation types (None = all)"
    )
    discovery_request_status: RequestStatus = Field(RequestStatus.WAITING)
    analysis_step: Optional[str] = Field(None, description="Current analysis step")
    error_message: Optional[str] = Field(None, description="Error message if failed")
    completion_date: Optional[datetime] = Field(None)
    additional_properties: dict[str, Any] = Field(default_factory=dict)
