# =============================================================================
# Connection Model
# =============================================================================
# Defines the Connection descriptor handed to the connector broker. Discovery
# services, pipelines and asset connectors are all built from a Connection.
# =============================================================================

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["Connection"]


class Connection(BaseModel):
    """
    Descriptor for creating a connector.

    Attributes:
        qualified_name: Unique name of the connection
        display_name: Short name, recorded by services when they start
        connector_provider: Provider name registered with the connector broker
        endpoint_address: Network address or file path of the resource
        configuration_properties: Provider-specific settings
        embedded_connections: Ordered connections of embedded services (pipelines)
    """

    qualified_name: str = Field(..., min_length=1, description="Unique connection name")
    display_name: str = Field("", description="Short name")
    connector_provider: str = Field(..., description="Registered provider name")
    endpoint_address: Optional[str] = Field(None, description="Address or path")
    configuration_properties: dict[str, Any] = Field(default_factory=dict)
    embedded_connections: list["Connection"] = Field(default_factory=list)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "qualified_name": "discovery:schema-scan",
                "display_name": "Schema Scan",
                "connector_provider": "DiscoveryPipeline",
                "embedded_connections": [
                    {
                        "qualified_name": "discovery:schema-scan:classifier",
                        "connector_provider": "ColumnClassifierService",
                    }
                ],
            }
        },
    )

    @field_validator("connector_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("connector_provider cannot be empty")
        return v

    @property
    def name(self) -> str:
        """Display name, falling back to the qualified name."""
        return self.display_name or self.qualified_name
