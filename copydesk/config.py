"""Copydesk configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "COPYDESK_", "env_file": ".env"}

    # Backend API keys
    google_api_key: str = ""
    anthropic_api_key: str = ""
    apify_api_token: str = ""

    # Text generation: "gemini" or "claude"
    generator_backend: str = "gemini"
    gemini_model: str = "gemini-2.0-flash"
    gemini_vision_model: str = "gemini-2.0-flash"
    claude_model: str = "claude-sonnet-4-5"

    # Upper bounds on external calls (seconds)
    ingestion_timeout: float = 150.0
    generation_timeout: float = 120.0

    # Database
    database_path: str = "copydesk.db"

    # Server
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]


settings = Settings()
