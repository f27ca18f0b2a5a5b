"""Configuration models."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Settings loaded from .env file (secrets and credentials)."""

    # Enrichment provider keys
    gemini_api_key: Optional[str] = Field(None, description="Google Gemini API key")
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    azure_openai_api_key: Optional[str] = Field(None, description="Azure OpenAI API key")
    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key")

    # Client auth
    recallbin_api_token: Optional[str] = Field(
        None, description="Bearer token accepted for the default user"
    )
    recallbin_user_id: str = Field(
        default="local", description="User id bound to RECALLBIN_API_TOKEN"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppConfig(BaseModel):
    """Application configuration from config.yaml."""

    # Server settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=5000, description="Server port")
    environment: Literal["development", "production"] = Field(
        default="development",
        description="Production hides internal error detail from responses",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: List[str] = Field(
        default_factory=list,
        description="CORS origins for the dashboard and browser extension",
    )

    # Document store
    data_dir: Optional[str] = Field(
        None, description="Document store root (defaults to <config_dir>/data)"
    )

    # Auth
    auth_tokens: Dict[str, str] = Field(
        default_factory=dict, description="Bearer token -> user id"
    )

    # Quota and result windows
    daily_quota_limit: int = Field(default=20, ge=1, le=10000)
    search_window_size: int = Field(default=50, ge=1, le=500)
    chat_window_size: int = Field(default=50, ge=1, le=500)
    chat_fallback_window_size: int = Field(default=20, ge=1, le=500)
    chat_fallback_max_results: int = Field(default=5, ge=1, le=100)

    # Content handling
    min_content_length: int = Field(
        default=50, ge=0, description="Below this, the URL is scraped for context"
    )
    max_extracted_chars: int = Field(default=50000, ge=1000)
    max_prompt_context_chars: int = Field(default=10000, ge=500)
    max_stored_content_chars: int = Field(default=50000, ge=1000, le=50000)
    fetch_timeout_seconds: int = Field(default=10, ge=1, le=60)

    # Collections
    default_collection_color: str = Field(default="#8B5CF6")

    # Enrichment provider chain
    ai_providers: List[str] = Field(
        default_factory=lambda: ["gemini", "openai", "azureopenai", "anthropic"],
        description="Ordered provider IDs for enrichment failover",
    )
    ai_timeout_seconds: int = Field(default=30, ge=1, le=120)

    gemini_enabled: bool = Field(default=True)
    gemini_endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    )
    gemini_model: str = Field(default="gemini-flash-latest")
    gemini_api_keys: List[str] = Field(default_factory=list)

    openai_enabled: bool = Field(default=True)
    openai_endpoint: str = Field(default="https://api.openai.com/v1/chat/completions")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_api_keys: List[str] = Field(default_factory=list)

    azure_openai_enabled: bool = Field(default=True)
    azure_openai_endpoint: str = Field(default="")
    azure_openai_model: str = Field(default="model-router")
    azure_openai_api_keys: List[str] = Field(default_factory=list)

    anthropic_enabled: bool = Field(default=True)
    anthropic_endpoint: str = Field(default="https://api.anthropic.com/v1/messages")
    anthropic_model: str = Field(default="claude-3-5-haiku-latest")
    anthropic_api_keys: List[str] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "host": "127.0.0.1",
            "port": 5000,
            "environment": "development",
            "data_dir": "/home/user/.recallbin/data",
            "allowed_origins": ["chrome-extension://your-extension-id"],
            "daily_quota_limit": 20,
            "search_window_size": 50,
            "ai_providers": ["gemini", "openai"],
            "ai_timeout_seconds": 30,
        }
    })
