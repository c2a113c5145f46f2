"""
Application configuration using Pydantic settings.

Configuration is loaded, in decreasing priority, from:
- Environment variables prefixed with S3_PROXY_ (e.g. S3_PROXY_BUCKET)
- A .env file in the working directory
- An s3-proxy.toml file in the working directory

Using Pydantic's BaseSettings means we get type validation at startup
(fail fast if config is wrong) and a single documented list of options.

Mock mode enables local development without object storage.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from ..core.routing.models import ProxyConfig
from ..infrastructure.storage.client import DEFAULT_CHUNK_SIZE, StorageConfig

CONFIG_FILE = "s3-proxy.toml"


class Settings(BaseSettings):
    """
    Proxy settings.

    All settings can be overridden via environment variables.
    """

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind to"
    )
    port: int = Field(
        default=8080,
        description="Port to bind to"
    )
    workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of worker processes. Defaults to the number of CPUs."
    )

    # Routing
    bucket: Optional[str] = Field(
        default=None,
        description="Bucket to serve. If unset, the bucket is the first path segment after the prefix."
    )
    url_prefix: Optional[str] = Field(
        default=None,
        description="Leading path segment every request must start with (e.g. 'files')"
    )

    # Storage
    region: str = Field(
        default="us-east-1",
        description="AWS region of the bucket"
    )
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (MinIO, R2). Unset for AWS."
    )
    access_key_id: Optional[str] = Field(
        default=None,
        description="Access key ID. Unset to use boto3's default credential chain."
    )
    secret_access_key: Optional[str] = Field(
        default=None,
        description="Secret access key. Required if access_key_id is set."
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for a connection to storage"
    )
    read_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait on a storage socket read"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Total attempts botocore makes per storage call (its own retry policy)"
    )
    mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real storage. Enables local dev without a bucket."
    )

    # Responses
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        gt=0,
        description="Bytes read from storage per chunk while streaming"
    )
    cache_control: str = Field(
        default="public, max-age=31536000",
        description="Cache-Control header sent with every object. Empty to omit."
    )
    health_path: str = Field(
        default="/_health",
        description="Where health checks are mounted. Empty to disable."
    )

    # API metadata
    api_title: str = "S3 Proxy"
    api_version: str = "0.1.0"

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="S3_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        toml_file=CONFIG_FILE,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @field_validator("bucket", "url_prefix", "endpoint_url", mode="before")
    @classmethod
    def _empty_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("url_prefix")
    @classmethod
    def _strip_prefix_slashes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip("/") or None

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("health_path")
    @classmethod
    def _normalise_health_path(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value

    @property
    def proxy_config(self) -> ProxyConfig:
        """Immutable routing configuration handed to the resolver."""
        return ProxyConfig(
            host=self.host,
            port=self.port,
            bucket=self.bucket,
            region=self.region,
            url_prefix=self.url_prefix,
        )

    @property
    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            region=self.region,
            endpoint_url=self.endpoint_url,
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            chunk_size=self.chunk_size,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            max_attempts=self.max_attempts,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Report configuration problems that Pydantic can't express per-field.

        Returns list of problems. Empty means the configuration is usable.
        """
        problems = []

        if self.mock_mode:
            return problems

        if bool(self.access_key_id) != bool(self.secret_access_key):
            problems.append(
                "S3_PROXY_ACCESS_KEY_ID and S3_PROXY_SECRET_ACCESS_KEY must be set together"
            )

        if not self.region:
            problems.append("S3_PROXY_REGION")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
