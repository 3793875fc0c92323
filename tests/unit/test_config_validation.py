import pytest

from memori.config import Settings, get_settings, validate_settings
from memori.errors import ConfigError


def test_defaults_from_environment() -> None:
    settings = get_settings()
    assert settings.session_ttl_minutes == 30
    assert settings.recall_limit == 5
    assert settings.augmentation_queue_size == 1000
    assert settings.writer_max_retries == 3
    assert settings.embedding_provider == "hash"
    validate_settings(settings)


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEMORI_SESSION_TTL_MINUTES", "5")
    monkeypatch.setenv("MEMORI_RECALL_LIMIT", "12")
    monkeypatch.setenv("MEMORI_ENTERPRISE", "1")
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()
    assert settings.session_ttl_minutes == 5
    assert settings.recall_limit == 12
    assert settings.enterprise == 1


def test_validate_rejects_non_positive_pool_sizes() -> None:
    settings = Settings(augmentation_queue_size=0, augmentation_workers=-1)
    with pytest.raises(ConfigError) as excinfo:
        validate_settings(settings)
    message = str(excinfo.value)
    assert "MEMORI_AUGMENTATION_QUEUE_SIZE" in message
    assert "MEMORI_AUGMENTATION_WORKERS" in message


def test_validate_prod_requires_remote_embedding_key() -> None:
    settings = Settings(app_env="prod", embedding_provider="openai", embedding_api_key="")
    with pytest.raises(ConfigError, match="MEMORI_EMBEDDING_API_KEY"):
        validate_settings(settings)


def test_validate_prod_accepts_hash_provider_without_key() -> None:
    validate_settings(Settings(app_env="prod", embedding_provider="hash"))


def test_validate_dev_allows_missing_remote_key() -> None:
    validate_settings(Settings(app_env="dev", embedding_provider="siliconflow"))
