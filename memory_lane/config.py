"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Memory Lane configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    chat_model: str = Field(default="claude-sonnet-4-20250514")
    router_model: str = Field(default="claude-3-5-haiku-20241022")
    embedding_model: str = Field(default="claude-3-5-haiku-20241022")
    request_timeout_seconds: float = Field(default=30.0)

    # Token budgets
    chat_max_tokens: int = Field(default=1000)
    gift_max_tokens: int = Field(default=1600)
    embed_max_tokens: int = Field(default=3500)

    # Embeddings
    embedding_label: str = Field(default="claude-semantic-v1")
    embedding_dimensions: int = Field(default=128)
    embedding_batch_size: int = Field(default=20)

    # Retrieval
    retrieval_limit: int = Field(default=30)
    fallback_recent_limit: int = Field(default=12)
    digest_size: int = Field(default=15)
    gift_candidate_limit: int = Field(default=80)

    # Gateway server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8888)

    # Client side
    gateway_url: str = Field(default="http://localhost:8888")
    data_path: Path = Field(default=Path("data/memory_lane.json"))

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
