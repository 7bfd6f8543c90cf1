"""Environment-backed settings for the storyboard swarm service."""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ai_gateway_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("AI_GATEWAY_API_KEY", "LOVABLE_API_KEY"),
    )
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-2.5-flash"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    facts_table: str = "knowledge_base"
    videos_bucket: str = "videos"
    max_agent_retries: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0.0)
    request_timeout_seconds: float = Field(default=120.0, gt=0.0)
    max_concurrent_pages: int = Field(default=5, ge=1)
    max_extracted_pages: int = Field(default=20, ge=1)
    log_level: str = "INFO"
    log_directory: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def gateway_configured(self) -> bool:
        return bool(self.ai_gateway_api_key)

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
