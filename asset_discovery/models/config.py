# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the discovery engine:
# - MongoSettings: MongoDB result graph store / catalog configuration
# - DiscoveryEngineSettings: Engine identity, worker pool and paging limits
# =============================================================================

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "MongoSettings",
    "DiscoveryEngineSettings",
]


# =============================================================================
# MongoDB Settings (Result Graph Store)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (result graph store, catalog and audit log).

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source

    Attributes:
        host: MongoDB host (default: "mongodb")
        port: MongoDB port (default: 27017)
        username: MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)
        password: MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)
        database: Database name (default: "asset_discovery")
        auth_source: Authentication source (default: "admin")
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)")
    database: str = Field("asset_discovery", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]

        Returns:
            MongoDB connection URI string
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Discovery Engine Settings
# =============================================================================

class DiscoveryEngineSettings(BaseSettings):
    """
    Configuration for a discovery engine instance.

    Maps environment variables with prefix "DISCOVERY_":
    - DISCOVERY_ENGINE_GUID → engine_guid
    - DISCOVERY_ENGINE_NAME → engine_name
    - DISCOVERY_MAX_WORKERS → max_workers
    - DISCOVERY_MAX_PAGE_SIZE → max_page_size

    Attributes:
        engine_guid: Identifier stamped on every report the engine creates
        engine_name: Display name used in report names and audit messages
        max_workers: Number of discovery requests executed concurrently
        max_page_size: Largest page a paging call may request
    """

    engine_guid: str = Field("default-discovery-engine", validation_alias="DISCOVERY_ENGINE_GUID", description="Engine identifier")
    engine_name: str = Field("Asset Discovery Engine", validation_alias="DISCOVERY_ENGINE_NAME", description="Engine display name")
    max_workers: int = Field(4, ge=1, validation_alias="DISCOVERY_MAX_WORKERS", description="Concurrent discovery requests")
    max_page_size: int = Field(500, ge=1, validation_alias="DISCOVERY_MAX_PAGE_SIZE", description="Largest page size")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )
