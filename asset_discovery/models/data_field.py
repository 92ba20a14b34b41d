# =============================================================================
# Data Field Models Module
# =============================================================================
# Defines models for discovered schema elements:
# - DataField: Node of the data field graph (nestable)
# - DataFieldLink: Typed peer relationship between two data fields
# - LinkDirection / RelatedDataField: A peer seen from one end of a link
# =============================================================================

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from .annotation import validate_type_name
from .base import GraphElementMixin

__all__ = [
    "DataField",
    "DataFieldLink",
    "LinkDirection",
    "RelatedDataField",
]


class DataField(GraphElementMixin):
    """
    A discovered schema element.

    Top-level data fields hang off an annotation (``annotation_guid``); nested
    fields hang off a parent data field (``parent_data_field_guid``).

    Attributes:
        data_field_name: Name of the schema element
        data_field_type: Type of the element (e.g., INTEGER, STRING)
        data_field_description: Description of the element
        data_field_namespace: Namespace the element belongs to
        data_field_aliases: Alternative names (deduplicated)
        data_field_sort_order: Position of the element within its parent
        version: Version number of the element definition
        version_identifier: Free-form version label
        annotation_guid: Origin annotation (top-level fields)
        parent_data_field_guid: Parent data field (nested fields)
    """

    data_field_name: Annotated[
        str,
        Field(..., description="Name of the schema element"),
        BeforeValidator(validate_type_name),
    ]
    data_field_type: Optional[str] = Field(None, description="Type of the element")
    data_field_description: str = Field("", description="Description of the element")
    data_field_namespace: Optional[str] = Field(None, description="Namespace")
    data_field_aliases: list[str] = Field(default_factory=list)
    data_field_sort_order: int = Field(0, ge=0, description="Position within parent")
    version: Optional[int] = Field(None, ge=0)
    version_identifier: Optional[str] = Field(None)
    annotation_guid: Optional[str] = Field(None, description="Origin annotation")
    parent_data_field_guid: Optional[str] = Field(None, description="Parent data field")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data_field_name": "customer_id",
                "data_field_type": "INTEGER",
                "data_field_aliases": ["Customer ID"],
                "data_field_sort_order": 0,
            }
        }
    )

    @field_validator("data_field_aliases")
    @classmethod
    def validate_aliases(cls, v: list[str]) -> list[str]:
        """Trim aliases, drop empty ones and deduplicate (order preserved)."""
        cleaned = [alias.strip() for alias in v if alias and alias.strip()]
        return list(dict.fromkeys(cleaned))


class DataFieldLink(BaseModel):
    """
    Properties of a peer relationship between two data fields.

    Attributes:
        guid: Link GUID (store-assigned)
        name: Name of the relationship
        type_name: Relationship type
        description: Description of the relationship
        relationship_end: End of the relationship the target sits at (1 or 2)
        min_cardinality: Minimum cardinality at the target end
        max_cardinality: Maximum cardinality at the target end
        directed: False for symmetric relationships
        properties: Free-form property bag
        from_data_field_guid: Source data field (store-assigned)
        to_data_field_guid: Target data field (store-assigned)
        report_guid: Report that recorded the link (store-assigned)
    """

    guid: Optional[str] = Field(None)
    name: str = Field("", description="Relationship name")
    type_name: Optional[str] = Field(None, description="Relationship type")
    description: str = Field("")
    relationship_end: Optional[int] = Field(None, ge=1, le=2)
    min_cardinality: Optional[int] = Field(None, ge=0)
    max_cardinality: Optional[int] = Field(None, ge=0)
    directed: bool = Field(True, description="False for symmetric relationships")
    properties: dict = Field(default_factory=dict)
    from_data_field_guid: Optional[str] = Field(None)
    to_data_field_guid: Optional[str] = Field(None)
    report_guid: Optional[str] = Field(None)


class LinkDirection(str, Enum):
    """Direction of a link as seen from the data field being queried."""

    OUTBOUND = "outbound"
    INBOUND = "inbound"
    UNDIRECTED = "undirected"


class RelatedDataField(BaseModel):
    """A data field reached over a peer link, with the link and its direction."""

    data_field: DataField
    link: DataFieldLink
    direction: LinkDirection
