"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """ringchat server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the query route reads personal health data and the
    # session cookie is the only credential.
    app_host: str = "127.0.0.1"
    app_port: int = 8001
    app_log_level: str = "info"
    app_allow_insecure_bind: bool = False

    # Generative model
    llm_provider: Literal["anthropic", "openai", "mock"] = "anthropic"
    anthropic_api_key: str = ""
    anthropic_models: list[str] = [
        "claude-sonnet-4-5-20250929",
        "claude-haiku-4-5-20251001",
    ]
    openai_api_key: str = ""
    openai_models: list[str] = ["gpt-4o", "gpt-4o-mini"]
    llm_max_retries: int = 2
    llm_max_tokens: int = 2048
    llm_temperature: float = 0.4

    # Wearable data
    data_provider: Literal["oura", "mock"] = "oura"
    oura_client_id: str = ""
    oura_client_secret: str = ""
    oura_api_base: str = "https://api.ouraring.com/v2/usercollection"
    oura_auth_url: str = "https://cloud.ouraring.com/oauth/authorize"
    oura_token_url: str = "https://api.ouraring.com/oauth/token"
    # Personal access token for the MCP `local` session (optional)
    oura_personal_access_token: str = ""
    http_timeout_seconds: float = 30.0

    # Response cache
    cache_ttl_seconds: float = 60 * 60
    cache_sweep_interval_seconds: float = 10 * 60

    # Sessions
    session_cookie_name: str = "ringchat_session"
    session_encryption_key: str = ""  # comma-separated Fernet keys, newest first

    # Conversation
    max_history_turns: int = 10


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
