"""Configuration for the voice gateway."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    service_name: str = "voice-gateway"
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "info"
    log_format: Literal["json", "console"] = "json"

    # Deepgram settings
    deepgram_api_key: str = Field(default="", description="Deepgram API key")
    deepgram_model: str = "nova-2"
    deepgram_language: str = "en-US"

    # OpenAI settings
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_timeout: float = 30.0
    llm_history_window: int = 20  # Messages sent to the model per turn

    # ElevenLabs settings
    elevenlabs_api_key: str = Field(default="", description="ElevenLabs API key")
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_model_id: str = "eleven_turbo_v2"  # Fastest model
    elevenlabs_timeout: float = 30.0
    latency_optimization: int = Field(default=3, ge=0, le=4)  # Higher = lower latency

    # Synthesis selection
    enable_streaming_tts: bool = True
    short_response_threshold: int = 15  # Words; at or below uses pass-through
    default_say_voice: str = "Polly.Joanna"

    # Utterance gating
    early_trigger_words: int = 8

    # Session settings
    transcript_queue_size: int = 32

    # Persistence
    persistence_backend: Literal["http", "memory"] = "memory"
    platform_api_url: str = "http://localhost:8000"
    platform_api_key: str = ""
    platform_api_timeout: float = 5.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
