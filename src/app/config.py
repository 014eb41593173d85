from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = Field(default="Lead Capture Chat")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # OpenAI
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default="gpt-4")
    openai_assistant_id: str = Field(default="")
    chat_provider: Literal["inline", "threaded"] = Field(default="inline")

    # Threaded run polling
    run_poll_interval_seconds: float = Field(default=1.0)
    run_poll_max_attempts: int = Field(default=30)

    # Contact sink
    contact_sink: Literal["http", "mongo"] = Field(default="http")
    contact_save_url: str = Field(default="")
    contact_save_timeout_seconds: float = Field(default=10.0)

    # MongoDB
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    mongo_database: str = Field(default="lead_chat")
    contacts_collection: str = Field(default="contacts")

    # Email
    email_api_key: str = Field(default="")
    email_sender_email: str = Field(
        default="",
        validation_alias=AliasChoices("EMAIL_SENDER_EMAIL", "EMAIL_SENDER"),
    )
    contact_notify_email: str = Field(default="")

    allowed_origins: List[str] = Field(
        default_factory=list,
        validation_alias="ALLOWED_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
