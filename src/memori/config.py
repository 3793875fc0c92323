"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from memori.errors import ConfigError

REMOTE_EMBEDDING_PROVIDERS = frozenset({"openai", "siliconflow"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    api_key: str = Field(alias="MEMORI_API_KEY", default="")
    enterprise: int = Field(alias="MEMORI_ENTERPRISE", default=0)
    timeout_seconds: float = Field(alias="MEMORI_TIMEOUT_SECONDS", default=10.0)
    storage_timeout_seconds: float = Field(alias="MEMORI_STORAGE_TIMEOUT_SECONDS", default=5.0)
    session_ttl_minutes: int = Field(alias="MEMORI_SESSION_TTL_MINUTES", default=30)
    recall_limit: int = Field(alias="MEMORI_RECALL_LIMIT", default=5)

    embedding_provider: str = Field(alias="MEMORI_EMBEDDING_PROVIDER", default="hash")
    embedding_api_key: str = Field(alias="MEMORI_EMBEDDING_API_KEY", default="")
    embedding_base_url: str = Field(alias="MEMORI_EMBEDDING_BASE_URL", default="")
    embedding_model: str = Field(alias="MEMORI_EMBEDDING_MODEL", default="")
    embedding_dimension: int = Field(alias="MEMORI_EMBEDDING_DIMENSION", default=0)

    augmentation_queue_size: int = Field(alias="MEMORI_AUGMENTATION_QUEUE_SIZE", default=1000)
    augmentation_workers: int = Field(alias="MEMORI_AUGMENTATION_WORKERS", default=8)
    augmentation_fact_max_chars: int = Field(
        alias="MEMORI_AUGMENTATION_FACT_MAX_CHARS", default=500
    )
    augmentation_summary_max_chars: int = Field(
        alias="MEMORI_AUGMENTATION_SUMMARY_MAX_CHARS", default=512
    )

    writer_max_retries: int = Field(alias="MEMORI_WRITER_MAX_RETRIES", default=3)
    writer_retry_backoff_ms: int = Field(alias="MEMORI_WRITER_RETRY_BACKOFF_MS", default=100)


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.augmentation_queue_size <= 0:
        problems.append("MEMORI_AUGMENTATION_QUEUE_SIZE(must be > 0)")
    if settings.augmentation_workers <= 0:
        problems.append("MEMORI_AUGMENTATION_WORKERS(must be > 0)")
    if settings.writer_max_retries <= 0:
        problems.append("MEMORI_WRITER_MAX_RETRIES(must be > 0)")
    if settings.session_ttl_minutes < 0:
        problems.append("MEMORI_SESSION_TTL_MINUTES(must be >= 0)")
    if settings.embedding_dimension < 0:
        problems.append("MEMORI_EMBEDDING_DIMENSION(must be >= 0)")

    provider = settings.embedding_provider.strip().lower()
    if (
        settings.app_env == "prod"
        and provider in REMOTE_EMBEDDING_PROVIDERS
        and not settings.embedding_api_key.strip()
    ):
        problems.append("MEMORI_EMBEDDING_API_KEY")

    if problems:
        keys = ", ".join(sorted(set(problems)))
        raise ConfigError(f"invalid memori configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
