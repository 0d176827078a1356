"""
Process-wide settings for the call relay.

Settings are read once from the environment (optionally seeded from a ``.env``
file) and are immutable afterwards. Empty variables count as unset. The API
credential is the only value the relay cannot run without;
``Settings.require_api_key`` is called once when the process starts.
"""

from pathlib import Path
from typing import Optional, Union

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from call_relay.config.constants import (
    AUDIO_FORMAT_G711_ULAW,
    CONFIG_SEND_DELAY,
    DEFAULT_GREETING,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_PROMPT,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_SYSTEM_MESSAGE,
    DEFAULT_TEMPERATURE,
    DEFAULT_VOICE,
    REALTIME_URL_TEMPLATE,
)
from call_relay.models.realtime_schemas import SessionConfiguration


class AuthConfigurationError(RuntimeError):
    """Raised when the speech endpoint credential is missing."""


class Settings(BaseSettings):
    """Immutable snapshot of the process configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    openai_api_key: Optional[str] = None
    realtime_model: str = Field(
        default=DEFAULT_REALTIME_MODEL,
        validation_alias=AliasChoices("OPENAI_REALTIME_MODEL", "realtime_model"),
    )
    realtime_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_REALTIME_URL", "realtime_url"),
    )
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    voice: str = DEFAULT_VOICE
    system_message: str = DEFAULT_SYSTEM_MESSAGE
    temperature: float = DEFAULT_TEMPERATURE
    audio_format: str = AUDIO_FORMAT_G711_ULAW
    config_send_delay: float = Field(default=CONFIG_SEND_DELAY, ge=0)
    max_concurrent_sessions: int = Field(default=0, ge=0)  # 0 means unlimited
    log_level: str = "INFO"
    greeting_message: str = DEFAULT_GREETING
    prompt_message: str = DEFAULT_PROMPT

    @property
    def api_key_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    @property
    def upstream_url(self) -> str:
        """The Realtime endpoint to dial, derived from the model unless overridden."""
        return self.realtime_url or REALTIME_URL_TEMPLATE.format(model=self.realtime_model)

    def require_api_key(self) -> str:
        """
        Return the API credential, refusing to continue without one.

        Raises:
            AuthConfigurationError: If OPENAI_API_KEY is unset or blank
        """
        if not self.api_key_configured:
            raise AuthConfigurationError(
                "Missing OpenAI API key. Please set OPENAI_API_KEY in the environment or .env file."
            )
        return self.openai_api_key

    def session_configuration(self) -> SessionConfiguration:
        """Build the configuration sent upstream once per call."""
        return SessionConfiguration(
            voice=self.voice,
            instructions=self.system_message,
            temperature=self.temperature,
            input_audio_format=self.audio_format,
            output_audio_format=self.audio_format,
        )


def load_settings(env_file: Optional[Union[str, Path]] = ".env") -> Settings:
    """
    Build Settings from the environment and an optional ``.env`` file.

    Variables already set in the environment take precedence over the file.

    Args:
        env_file: ``.env`` file to read, or None to read the environment only

    Raises:
        pydantic.ValidationError: If a value cannot be coerced (e.g. a non-numeric PORT)
    """
    return Settings(_env_file=env_file)
