"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KMLVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "KMLVIEW"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Renderer
    clamp_to_ground: bool = True  # results-archive KML often has absolute altitudes that are off

    # Places panel
    hide_labels: bool = False     # initial state of the "hide labels" toggle

    # Upload limit for POST /api/places/load
    max_document_bytes: int = 50 * 1024 * 1024


settings = Settings()
