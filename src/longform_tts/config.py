"""Centralised configuration via pydantic-settings + .env."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All knobs live here.  Loaded from environment / .env in project root."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Gemini TTS ──────────────────────────────────────
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash-preview-tts"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_s: float = 120.0

    # ── Generation ──────────────────────────────────────
    chunk_max_chars: int = 2500
    max_text_chars: int = 50000
    max_description_chars: int = 7000

    # ── Audio ────────────────────────────────────────────
    pcm_sample_rate: int = 24000
    pcm_channels: int = 1

    # ── Voices ───────────────────────────────────────────
    default_voice_id: str = "Kore"

    # ── Download ─────────────────────────────────────────
    download_prefix: str = "tts-r-2.0"

    # ── Server ───────────────────────────────────────────
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    max_concurrent_sessions: int = 10

    # ── Logging / Metrics ───────────────────────────────
    log_level: str = "INFO"
    log_segments: bool = False
    metrics_enabled: bool = True
    metrics_history: int = 20

    # ── Derived helpers ──────────────────────────────────
    @property
    def gemini_speech_url(self) -> str:
        return f"{self.gemini_base_url.rstrip('/')}/models/{self.gemini_model}:generateContent"

    @field_validator("gemini_api_key")
    @classmethod
    def _strip_api_key(cls, v: str) -> str:
        return v.strip()

    @field_validator(
        "chunk_max_chars",
        "max_text_chars",
        "max_description_chars",
        "pcm_sample_rate",
        "pcm_channels",
        "max_concurrent_sessions",
        "metrics_history",
    )
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v


def get_settings() -> Settings:
    """Singleton-ish factory; import and call where needed."""
    return Settings()
