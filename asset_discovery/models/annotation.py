# =============================================================================
# Annotation Models Module
# =============================================================================
# Defines models for discovery annotations:
# - AnnotationType: Validated annotation type name
# - AnnotationStatus: Review lifecycle of an annotation
# - Annotation: Node of the annotation graph
# =============================================================================

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from .base import GraphElementMixin

__all__ = [
    "AnnotationType",
    "AnnotationStatus",
    "Annotation",
    "AnnotationTypeDescription",
    "REVIEWED_ANNOTATION_STATUSES",
    "validate_type_name",
]


# =============================================================================
# Type Name Validation
# =============================================================================


def validate_type_name(value: str) -> str:
    """
    Validate an annotation or data field type name.

    Args:
        value: Type name to validate

    Returns:
        Trimmed type name

    Raises:
        TypeError: If the value is not a string
        ValueError: If the name is empty or whitespace only
    """
    if not isinstance(value, str):
        raise TypeError(f"Type name must be a string, got {type(value).__name__}")

    value = value.strip()
    if not value:
        raise ValueError("Type name cannot be empty or whitespace only")

    return value


AnnotationType = Annotated[
    str,
    Field(..., description="Annotation type name (e.g., 'Schema Analysis')"),
    BeforeValidator(validate_type_name),
]
"""Annotation type name. Non-empty, surrounding whitespace trimmed."""


# =============================================================================
# Annotation Status Enum
# =============================================================================


class AnnotationStatus(str, Enum):
    """Review status of an annotation."""

    NEW = "new"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    ACTIONED = "actioned"
    INVALID = "invalid"
    IGNORED = "ignored"
    UNKNOWN = "unknown"


REVIEWED_ANNOTATION_STATUSES = (
    AnnotationStatus.REVIEWED,
    AnnotationStatus.APPROVED,
    AnnotationStatus.ACTIONED,
)
"""Statuses of annotations that have passed review."""


# =============================================================================
# Annotation Model
# =============================================================================


class Annotation(GraphElementMixin):
    """
    A structured finding attached to a report, an annotation or a data field.

    Exactly one anchor is set by the store: none of ``parent_annotation_guid``
    and ``data_field_guid`` for top-level annotations, otherwise one of them.

    Attributes:
        annotation_type: Kind of finding
        summary: One-line summary of the finding
        confidence_level: Confidence in the finding (0-100)
        expression: Expression used to derive the finding
        explanation: Human-readable explanation
        analysis_step: Analysis step that produced the annotation
        json_properties: Serialized extra properties
        annotation_status: Review status
        parent_annotation_guid: Parent annotation (extended annotations)
        data_field_guid: Data field the annotation is attached to
    """

    annotation_type: AnnotationType
    summary: str = Field("", description="Summary of the finding")
    confidence_level: int = Field(0, ge=0, le=100, description="Confidence (0-100)")
    expression: Optional[str] = Field(None, description="Expression used")
    explanation: str = Field("", description="Explanation of the finding")
    analysis_step: Optional[str] = Field(None, description="Producing analysis step")
    json_properties: Optional[str] = Field(None, description="Serialized properties")
    annotation_status: AnnotationStatus = Field(AnnotationStatus.NEW)
    parent_annotation_guid: Optional[str] = Field(None, description="Parent annotation")
    data_field_guid: Optional[str] = Field(None, description="Anchoring data field")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "annotation_type": "Schema Analysis",
                "summary": "3 columns discovered",
                "confidence_level": 100,
                "explanation": "Columns read from the CSV header",
                "analysis_step": "classify",
                "annotation_status": "new",
            }
        }
    )

    @property
    def is_top_level(self) -> bool:
        return self.parent_annotation_guid is None and self.data_field_guid is None


class AnnotationTypeDescription(BaseModel):
    """Registered annotation type with its description."""

    type_name: AnnotationType
    description: str = Field("", description="What the annotation type records")
