"""
Configuration module for the OnlineCare Chat Relay application.
Handles environment variables and application settings.
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RelaySettings:
    """Immutable upstream and relay settings, built once at startup."""
    base_url: str
    model: str
    max_tokens: int = -1
    buffered_timeout: float = 30.0
    stream_timeout: float = 300.0
    probe_timeout: float = 5.0
    status_timeout: float = 5.0
    max_retries: int = 2
    retry_backoff: float = 1.0
    history_limit: int = 10
    fallback_enabled: bool = True
    fallback_word_delay: float = 0.15
    connecting_notice: str = "Connecting to OnlineCareAI..."

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/models"


class Config:
    """Application configuration class."""

    # Upstream inference server (OpenAI-compatible, e.g. LM Studio)
    UPSTREAM_BASE_URL: str = os.getenv("UPSTREAM_BASE_URL", "http://localhost:1234")
    UPSTREAM_MODEL: str = os.getenv("UPSTREAM_MODEL", "deepseek/deepseek-r1-0528-qwen3-8b")
    UPSTREAM_MAX_TOKENS: int = int(os.getenv("UPSTREAM_MAX_TOKENS", "-1"))

    # Application Settings
    APP_TITLE: str = "OnlineCare Chat Relay"
    API_PREFIX: str = os.getenv("API_PREFIX", "")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    MAX_MESSAGE_LENGTH: int = 1000
    MAX_HISTORY_MESSAGES: int = int(os.getenv("MAX_HISTORY_MESSAGES", "10"))
    DEFAULT_TEMPERATURE: float = 0.7

    # Timeouts (in seconds)
    BUFFERED_TIMEOUT: float = float(os.getenv("BUFFERED_TIMEOUT", "30"))
    STREAM_TIMEOUT: float = float(os.getenv("STREAM_TIMEOUT", "300"))
    PROBE_TIMEOUT: float = float(os.getenv("PROBE_TIMEOUT", "5"))
    STATUS_TIMEOUT: float = float(os.getenv("STATUS_TIMEOUT", "5"))

    # Buffered retries
    UPSTREAM_MAX_RETRIES: int = int(os.getenv("UPSTREAM_MAX_RETRIES", "2"))
    UPSTREAM_RETRY_BACKOFF: float = float(os.getenv("UPSTREAM_RETRY_BACKOFF", "1.0"))

    # Fallback responder
    FALLBACK_ENABLED: bool = _env_bool("FALLBACK_ENABLED", True)
    FALLBACK_WORD_DELAY: float = float(os.getenv("FALLBACK_WORD_DELAY", "0.15"))
    CONNECTING_NOTICE: str = os.getenv("CONNECTING_NOTICE", "Connecting to OnlineCareAI...")

    @classmethod
    def relay_settings(cls) -> RelaySettings:
        """Snapshot the current configuration as an immutable settings object."""
        return RelaySettings(
            base_url=cls.UPSTREAM_BASE_URL,
            model=cls.UPSTREAM_MODEL,
            max_tokens=cls.UPSTREAM_MAX_TOKENS,
            buffered_timeout=cls.BUFFERED_TIMEOUT,
            stream_timeout=cls.STREAM_TIMEOUT,
            probe_timeout=cls.PROBE_TIMEOUT,
            status_timeout=cls.STATUS_TIMEOUT,
            max_retries=cls.UPSTREAM_MAX_RETRIES,
            retry_backoff=cls.UPSTREAM_RETRY_BACKOFF,
            history_limit=cls.MAX_HISTORY_MESSAGES,
            fallback_enabled=cls.FALLBACK_ENABLED,
            fallback_word_delay=cls.FALLBACK_WORD_DELAY,
            connecting_notice=cls.CONNECTING_NOTICE,
        )

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and print warnings for suspicious values."""
        if not cls.UPSTREAM_BASE_URL.startswith(("http://", "https://")):
            print(f"   WARNING: UPSTREAM_BASE_URL '{cls.UPSTREAM_BASE_URL}' is not an http(s) URL")

        if cls.PROBE_TIMEOUT >= cls.STREAM_TIMEOUT:
            print("   WARNING: PROBE_TIMEOUT should be shorter than STREAM_TIMEOUT")
            print("   The fallback decision would otherwise wait as long as a full generation.")


Config.validate()
