"""Configuration management with YAML and environment variable support."""

from pathlib import Path
from typing import ClassVar, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads configuration from YAML file."""

    def get_field_value(self, field, field_name: str):
        # Not used with prepare method
        pass

    def prepare_field_value(self, field_name: str, field, value, value_is_complex: bool):
        return value

    def __call__(self):
        # Load from config.yaml in current directory
        yaml_path = Path("config.yaml")
        if not yaml_path.exists():
            return {}

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return data


class NewsSourceConfig(BaseModel):
    """GNews article source."""

    base_url: str = "https://gnews.io/api/v4"
    api_key: Optional[str] = None
    max_results: int = 10
    timeout: float = 15.0


class SummarizerConfig(BaseModel):
    """HuggingFace summarization endpoint and retry policy.

    Attempt n uses a request timeout of n * base_timeout seconds and waits
    n * backoff_seconds before the next attempt on a retryable failure.
    """

    base_url: str = "https://router.huggingface.co/hf-inference"
    model: str = "facebook/bart-large-cnn"
    api_key: Optional[str] = None
    max_attempts: int = 5
    base_timeout: float = 30.0
    backoff_seconds: float = 2.0
    min_length: int = 50
    health_cache_seconds: float = 60.0
    health_timeout: float = 15.0


class MediaServiceConfig(BaseModel):
    """Speech synthesis and video render service."""

    service_url: str = "http://localhost:8002"
    tts_timeout: float = 60.0
    render_timeout: float = 120.0
    health_timeout: float = 5.0
    voice: str = "neutral"
    speed: float = 1.0
    audio_format: str = "mp3"


class PublisherConfig(BaseModel):
    """YouTube publishing.

    token_file points at an authorized-user JSON file produced by the OAuth
    consent flow; obtaining it is outside this service.
    """

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_file: Path = Path("youtube-tokens.json")
    category_id: str = "25"
    privacy_status: str = "public"

    @field_validator("token_file", mode="before")
    @classmethod
    def convert_token_file_to_path(cls, v):
        """Convert string to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class AutomationConfig(BaseModel):
    """News sync automation."""

    enabled: bool = True
    interval_seconds: float = 3600.0
    topics: list[str] = Field(default_factory=lambda: ["technology", "science", "world"])
    language: str = "en"
    target_length: int = 150
    auto_publish: bool = False


class StorageConfig(BaseModel):
    """Storage and database configuration."""

    database_url: str = "sqlite+aiosqlite:///autonews.db"
    tmp_dir: Path = Path("tmp")

    @field_validator("tmp_dir", mode="before")
    @classmethod
    def convert_tmp_dir_to_path(cls, v):
        """Convert string to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 5000


class Settings(BaseSettings):
    """Main application settings with YAML and environment variable support.

    Configuration sources (in priority order):
    1. Environment variables (prefix: AUTONEWS_, delimiter: __)
    2. .env file
    3. YAML file (config.yaml)
    4. Field defaults
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="AUTONEWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    news_source: NewsSourceConfig = Field(default_factory=NewsSourceConfig)
    summarizer: SummarizerConfig = Field(default_factory=SummarizerConfig)
    media_service: MediaServiceConfig = Field(default_factory=MediaServiceConfig)
    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        """Customize settings sources to include YAML configuration.

        Priority order (highest to lowest):
        1. Init settings (explicit keyword arguments, used by tests)
        2. Environment variables
        3. .env file
        4. YAML file
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


# Singleton instance
settings = Settings()
