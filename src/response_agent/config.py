"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from .env file and environment variables."""

    # Foundry Agent Service
    foundry_endpoint: str = ""
    foundry_agent_id: str = ""
    foundry_review_agent_id: str = ""
    foundry_rewrite_agent_id: str = ""
    foundry_chat_agent_id: str = ""

    # Voice (Azure OpenAI audio deployments)
    voice_endpoint: str = ""
    voice_api_version: str = "2025-03-01-preview"
    voice_transcription_deployment: str = "gpt-4o-transcribe"
    voice_tts_deployment: str = "gpt-4o-mini-tts"
    voice_name: str = "alloy"
    voice_instructions: str = (
        "You are a helpful AI assistant. Respond naturally and conversationally "
        "in Japanese. Keep your responses concise but engaging."
    )

    # Local audio
    audio_input_device: str | None = None
    waveform_columns: int = 600

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def resolved_voice_endpoint(self) -> str:
        """Voice endpoint, falling back to the Foundry endpoint."""
        return self.voice_endpoint or self.foundry_endpoint


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
