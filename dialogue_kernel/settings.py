"""Centralised settings for the dialogue kernel, loaded from env / .env."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from dialogue_kernel.models.config import DialogueConfig


class DialogueSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DIALOGUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- general ---
    app_name: str = "Dialogue Kernel API"
    debug: bool = False

    # --- routing thresholds ---
    high_threshold: float = 0.7
    medium_threshold: float = 0.45
    ambiguity_margin: float = 0.15

    # --- context ---
    history_limit: int = 10

    # --- sessions ---
    session_lock_timeout: float = 5.0
    default_location: str = "San Francisco"

    def to_config(self) -> DialogueConfig:
        return DialogueConfig(
            high_threshold=self.high_threshold,
            medium_threshold=self.medium_threshold,
            ambiguity_margin=self.ambiguity_margin,
            history_limit=self.history_limit,
        )


@lru_cache
def get_settings() -> DialogueSettings:
    return DialogueSettings()
