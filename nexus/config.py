"""
Configuration Management Module

All runtime configuration comes from environment variables with sensible
defaults. A `.env` file in the working directory is loaded first (if present)
and real environment variables always win.

Usage:
    from nexus.config import settings
    print(settings.anthropic.messages_url)

Sections:
- anthropic: text generation backend (credentials, models, timeouts)
- speech: streaming speech-recognition backend
- audio: transcoding and audio validation thresholds
- memory: per-session interview memory and answer relay limits
- logging: log level and optional log file
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_env(key: str, default: str = "", required: bool = False) -> str:
    """
    Get an environment variable with optional default and validation.

    Args:
        key: The environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        The environment variable value or default

    Raises:
        ValueError: If required=True and the variable is not set
    """
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get an environment variable as integer."""
    return int(get_env(key, str(default)))


def get_env_float(key: str, default: float) -> float:
    """Get an environment variable as float."""
    return float(get_env(key, str(default)))


def get_env_bool(key: str, default: bool) -> bool:
    """Get an environment variable as boolean."""
    value = get_env(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_env_list(key: str, default: str = "") -> List[str]:
    """Get a comma separated environment variable as a list of strings."""
    raw = get_env(key, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class AnthropicConfig:
    """
    Text generation backend configuration.

    Attributes:
        api_key: Anthropic API key (checked at call time, not at startup)
        base_url: API base URL
        api_version: Value of the anthropic-version header
        default_model: Model for request/response assistance
        live_model: Model for streamed live-interview answers
        max_tokens: Output cap for request/response calls
        live_max_tokens: Output cap for streamed answers
        connect_timeout_s: Connection timeout
        read_timeout_s: Overall request/stream timeout
    """
    api_key: str = field(default_factory=lambda: get_env("ANTHROPIC_API_KEY"))
    base_url: str = field(default_factory=lambda: get_env("ANTHROPIC_BASE_URL", "https://api.anthropic.com"))
    api_version: str = field(default_factory=lambda: get_env("ANTHROPIC_API_VERSION", "2023-06-01"))
    default_model: str = field(default_factory=lambda: get_env("ANTHROPIC_MODEL", "claude-3-5-haiku-20241022"))
    live_model: str = field(default_factory=lambda: get_env("ANTHROPIC_LIVE_MODEL", "claude-sonnet-4-20250514"))
    max_tokens: int = field(default_factory=lambda: get_env_int("LLM_MAX_TOKENS", 2000))
    live_max_tokens: int = field(default_factory=lambda: get_env_int("LLM_LIVE_MAX_TOKENS", 500))
    connect_timeout_s: float = field(default_factory=lambda: get_env_float("LLM_CONNECT_TIMEOUT", 10.0))
    read_timeout_s: float = field(default_factory=lambda: get_env_float("LLM_READ_TIMEOUT", 120.0))

    @property
    def is_configured(self) -> bool:
        """Check whether an API key is present."""
        return bool(self.api_key)

    @property
    def messages_url(self) -> str:
        """Get the full URL of the messages endpoint."""
        return f"{self.base_url.rstrip('/')}/v1/messages"


@dataclass
class SpeechConfig:
    """
    Streaming speech-recognition configuration (Azure Speech).

    Attributes:
        api_key: Azure Speech subscription key
        region: Azure region of the Speech resource
        language: Recognition language
        sample_rate: PCM sample rate declared to the backend
        chunk_size_bytes: Size of each PCM chunk pushed to the stream
        stream_timeout_s: Wall-clock limit for one transcription stream
    """
    api_key: str = field(default_factory=lambda: get_env("AZURE_SPEECH_API_KEY"))
    region: str = field(default_factory=lambda: get_env("AZURE_SPEECH_REGION"))
    language: str = field(default_factory=lambda: get_env("SPEECH_LANGUAGE", "en-US"))
    sample_rate: int = field(default_factory=lambda: get_env_int("SPEECH_SAMPLE_RATE", 16000))
    chunk_size_bytes: int = field(default_factory=lambda: get_env_int("SPEECH_CHUNK_SIZE", 8000))
    stream_timeout_s: float = field(default_factory=lambda: get_env_float("SPEECH_STREAM_TIMEOUT", 60.0))

    @property
    def is_configured(self) -> bool:
        """Both key and region are needed to open a stream."""
        return bool(self.api_key and self.region)


@dataclass
class AudioConfig:
    """
    Audio transcoding configuration.

    Attributes:
        ffmpeg_path: ffmpeg executable
        min_raw_bytes: Smallest compressed upload accepted
        min_pcm_bytes: Smallest converted PCM buffer accepted (~0.1s)
        convert_timeout_s: Limit on one ffmpeg run
        silence_threshold: Sample amplitude that counts as sound
        debug_dump_dir: If set, last raw/PCM buffers are written here
    """
    ffmpeg_path: str = field(default_factory=lambda: get_env("FFMPEG_PATH", "ffmpeg"))
    min_raw_bytes: int = field(default_factory=lambda: get_env_int("AUDIO_MIN_RAW_BYTES", 1000))
    min_pcm_bytes: int = field(default_factory=lambda: get_env_int("AUDIO_MIN_PCM_BYTES", 3200))
    convert_timeout_s: float = field(default_factory=lambda: get_env_float("AUDIO_CONVERT_TIMEOUT", 30.0))
    silence_threshold: int = field(default_factory=lambda: get_env_int("AUDIO_SILENCE_THRESHOLD", 1000))
    debug_dump_dir: Optional[str] = field(default_factory=lambda: get_env("AUDIO_DEBUG_DUMP_DIR") or None)


@dataclass
class MemoryConfig:
    """
    Interview memory and answer relay configuration.

    Stored pairs are cut to question_chars/answer_chars. The "earlier in this
    interview" prompt block uses its own, shorter context_* limits.
    """
    max_pairs: int = field(default_factory=lambda: get_env_int("MEMORY_MAX_PAIRS", 8))
    question_chars: int = field(default_factory=lambda: get_env_int("MEMORY_QUESTION_CHARS", 150))
    answer_chars: int = field(default_factory=lambda: get_env_int("MEMORY_ANSWER_CHARS", 200))
    context_pairs: int = field(default_factory=lambda: get_env_int("MEMORY_CONTEXT_PAIRS", 3))
    context_question_chars: int = field(default_factory=lambda: get_env_int("MEMORY_CONTEXT_QUESTION_CHARS", 80))
    context_answer_chars: int = field(default_factory=lambda: get_env_int("MEMORY_CONTEXT_ANSWER_CHARS", 100))
    default_session_id: str = field(default_factory=lambda: get_env("DEFAULT_SESSION_ID", "default"))
    event_queue_size: int = field(default_factory=lambda: get_env_int("ANSWER_QUEUE_SIZE", 100))
    fragment_timeout_s: float = field(default_factory=lambda: get_env_float("ANSWER_FRAGMENT_TIMEOUT", 60.0))

    def validate(self) -> bool:
        """Validate memory limits."""
        if self.max_pairs <= 0:
            raise ValueError("MEMORY_MAX_PAIRS must be positive")
        if self.context_pairs < 0:
            raise ValueError("MEMORY_CONTEXT_PAIRS cannot be negative")
        if self.event_queue_size <= 0:
            raise ValueError("ANSWER_QUEUE_SIZE must be positive")
        return True


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        file: Optional log file path
    """
    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE") or None)


@dataclass
class Settings:
    """
    Main settings container aggregating all configuration sections.

    Access via the singleton `settings` instance.

    Example:
        from nexus.config import settings

        if settings.speech.is_configured:
            ...
        model = settings.anthropic.live_model
    """
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Application-level settings
    app_env: str = field(default_factory=lambda: get_env("APP_ENV", "development"))
    cors_origins: List[str] = field(default_factory=lambda: get_env_list("CORS_ORIGINS", "*"))
    host: str = field(default_factory=lambda: get_env("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: get_env_int("PORT", 8000))

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    def validate_all(self) -> bool:
        """
        Validate configuration that must be sane at startup.

        Backend credentials are not checked here; a missing key is reported
        when the backend is first called.
        """
        self.memory.validate()
        return True


# Singleton settings instance
settings = Settings()
