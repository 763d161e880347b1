"""
Application settings and configuration management.
"""
from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Configuration
    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=8000, description="Server port")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    log_level: str = Field(default="INFO", description="Log level")

    # Reasoning provider (OpenAI-compatible chat completions, DeepSeek by default)
    reasoning_api_key: str = Field(default="", description="Reasoning provider API key")
    reasoning_base_url: str = Field(
        default="https://api.deepseek.com/v1", description="Reasoning provider base URL"
    )
    reasoning_model: str = Field(default="deepseek-chat", description="Reasoning model")
    reasoning_timeout_seconds: float = Field(
        default=45.0, description="Per-call timeout for the reasoning provider"
    )

    # Image provider (OpenAI images API)
    image_api_key: str = Field(default="", description="Image provider API key")
    image_base_url: str = Field(
        default="https://api.openai.com/v1", description="Image provider base URL"
    )
    image_model: str = Field(default="dall-e-3", description="Image generation model")
    image_size: str = Field(default="1792x1024", description="Fixed overlay canvas size")
    image_quality: str = Field(default="standard", description="Image quality tier")
    image_timeout_seconds: float = Field(
        default=50.0, description="Per-call timeout for the image provider"
    )

    # Durable image hosting (Supabase-compatible storage REST API)
    storage_url: str = Field(default="", description="Storage service base URL")
    storage_service_key: str = Field(default="", description="Storage service key")
    storage_bucket: str = Field(default="overlay-images", description="Overlay image bucket")

    # Durable artifact store
    database_url: str = Field(default="", description="PostgreSQL connection URL")

    # Generation pipeline
    generation_deadline_seconds: float = Field(
        default=60.0, description="Overall deadline for one overlay generation run"
    )

    # Monitoring
    enable_metrics: bool = Field(default=True, description="Enable Prometheus metrics")
    enable_structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )


# Global settings instance
settings = Settings()
