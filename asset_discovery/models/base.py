# =============================================================================
# Base Models and Mixins
# =============================================================================
# Shared fields for result graph elements (annotations, data fields, links).
# =============================================================================

"""Base models and mixins for result graph elements."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

__all__ = ["GraphElementMixin"]


class GraphElementMixin(BaseModel):
    """
    Identity and bookkeeping fields shared by every result graph element.

    The store assigns ``guid``, ``report_guid``, ``asset_guid`` and the
    timestamps; values supplied by callers for these fields are ignored on
    creation.

    Attributes:
        guid: Element GUID
        report_guid: Discovery report that owns the element
        asset_guid: Asset the owning report analyses
        additional_properties: Free-form string properties
        properties: Free-form property bag
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    guid: Optional[str] = Field(None, description="Element GUID (store-assigned)")
    report_guid: Optional[str] = Field(None, description="Owning report GUID")
    asset_guid: Optional[str] = Field(None, description="Analysed asset GUID")
    additional_properties: dict[str, str] = Field(default_factory=dict)
    properties: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = Field(None)
    updated_at: Optional[datetime] = Field(None)

    @field_validator("additional_properties", mode="before")
    @classmethod
    def stringify_additional_properties(cls, v: Any) -> dict[str, str]:
        """
        Coerce additional property values to strings.

        - None becomes an empty dict
        - Non-string values are converted with str()
        """
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise TypeError("additional_properties must be a dict")
        return {str(key): str(value) for key, value in v.items()}
