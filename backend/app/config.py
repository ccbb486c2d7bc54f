from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PROJECT_NAME: str = "HealthMate Safety"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
    CORS_ORIGIN_REGEX: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    # Database (flag ledger)
    DATABASE_URL: str = "sqlite:///./healthmate.db"

    # Moderation
    MODERATION_ENABLED: bool = False  # remote classifier master switch
    MODERATION_STRICT_MODE: bool = False  # also use the classifier on chat turns
    CLASSIFIER_URL: str = "https://api.openai.com/v1/chat/completions"
    CLASSIFIER_API_KEY: str = ""
    CLASSIFIER_MODEL: str = "gpt-4o-mini"
    CLASSIFIER_TIMEOUT_S: float = 10.0
    FLAG_WRITES_BACKGROUND: bool = False

    # Generation providers, tried in this order
    LLM_PROVIDER_ORDER: str = "groq,openai,local"
    LLM_MAX_TOKENS: int = 500
    LLM_TEMPERATURE: float = 0.7
    LLM_CHAIN_DEADLINE_S: Optional[float] = None

    GROQ_API_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    GROQ_API_KEY: str = ""
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_TIMEOUT_S: float = 30.0

    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TIMEOUT_S: float = 30.0

    LOCAL_LLM_ENABLED: bool = False
    LOCAL_API_URL: str = "http://localhost:8080/v1/chat/completions"
    LOCAL_API_KEY: str = ""
    LOCAL_MODEL: str = "local"
    LOCAL_TIMEOUT_S: float = 60.0

    # Feed ranking
    FEED_FETCH_MULTIPLIER: int = 3
    FEED_MAX_LIMIT: int = 50
    DEFAULT_LANGUAGE: str = "en"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@dataclass(frozen=True)
class ProviderConfig:
    """Connection details for one generation provider."""

    name: str
    endpoint: str
    credential: str
    model: str
    timeout: float


@dataclass(frozen=True)
class ModerationConfig:
    """Switches the moderation orchestrator is built with."""

    remote_classifier_enabled: bool = False
    flag_writes_background: bool = False


def moderation_config(settings: Settings) -> ModerationConfig:
    return ModerationConfig(
        remote_classifier_enabled=bool(settings.MODERATION_ENABLED),
        flag_writes_background=bool(settings.FLAG_WRITES_BACKGROUND),
    )


def provider_configs(settings: Settings) -> Tuple[ProviderConfig, ...]:
    """Resolve LLM_PROVIDER_ORDER into the providers that are actually usable.

    Remote providers need a credential; the local provider needs LOCAL_LLM_ENABLED.
    Unknown names are ignored.
    """
    out: List[ProviderConfig] = []
    seen = set()
    for raw in (settings.LLM_PROVIDER_ORDER or "").split(","):
        name = raw.strip().lower()
        if not name or name in seen:
            continue
        seen.add(name)
        if name == "groq" and settings.GROQ_API_KEY.strip():
            out.append(ProviderConfig(
                "groq", settings.GROQ_API_URL, settings.GROQ_API_KEY.strip(),
                settings.GROQ_MODEL, float(settings.GROQ_TIMEOUT_S),
            ))
        elif name == "openai" and settings.OPENAI_API_KEY.strip():
            out.append(ProviderConfig(
                "openai", settings.OPENAI_API_URL, settings.OPENAI_API_KEY.strip(),
                settings.OPENAI_MODEL, float(settings.OPENAI_TIMEOUT_S),
            ))
        elif name == "local" and settings.LOCAL_LLM_ENABLED:
            out.append(ProviderConfig(
                "local", settings.LOCAL_API_URL, settings.LOCAL_API_KEY.strip(),
                settings.LOCAL_MODEL, float(settings.LOCAL_TIMEOUT_S),
            ))
    return tuple(out)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    # Only require a generation provider in production
    if settings.ENVIRONMENT == "production" and not provider_configs(settings):
        raise ValueError("At least one generation provider must be configured in production")

    return settings
