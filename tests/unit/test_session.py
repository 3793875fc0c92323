import pytest

from memori.config import Settings
from memori.errors import AttributionError
from memori.session import IdentityCache, RuntimeConfig


def _populated(config: RuntimeConfig) -> None:
    identity = config.identity()
    config.update_cache(
        IdentityCache(entity_id=1, process_id=2, session_id=3, conversation_id=4), identity
    )


def test_from_settings_uses_ttl_and_recall_limit() -> None:
    config = RuntimeConfig.from_settings(Settings(session_ttl_minutes=7, recall_limit=9))
    assert config.session_ttl_minutes == 7
    assert config.recall_limit == 9
    assert len(config.session_id) == 36


def test_attribution_length_limits() -> None:
    config = RuntimeConfig()
    config.set_attribution("e" * 100, "p" * 100)
    with pytest.raises(AttributionError, match="entity_id"):
        config.set_attribution("e" * 101, "p")
    with pytest.raises(AttributionError, match="process_id"):
        config.set_attribution("e", "p" * 101)
    assert config.entity_id == "e" * 100


def test_changing_entity_drops_dependent_ids() -> None:
    config = RuntimeConfig()
    config.set_attribution("user-1", "proc")
    _populated(config)
    config.set_attribution("user-2", "proc")
    assert config.cached() == IdentityCache(entity_id=None, process_id=2)


def test_same_attribution_keeps_cache() -> None:
    config = RuntimeConfig()
    config.set_attribution("user-1", "proc")
    _populated(config)
    config.set_attribution("user-1", "proc")
    assert config.cached().conversation_id == 4


def test_new_session_resets_cache() -> None:
    config = RuntimeConfig()
    _populated(config)
    before = config.session_id
    after = config.new_session()
    assert after != before
    assert config.cached() == IdentityCache()


def test_set_session_validates_uuid() -> None:
    config = RuntimeConfig()
    _populated(config)
    config.set_session("0b8f2a2e-6a8e-4c0d-9a65-3b1f6c1f2a10")
    assert config.session_id == "0b8f2a2e-6a8e-4c0d-9a65-3b1f6c1f2a10"
    assert config.cached().session_id is None
    assert config.cached().entity_id == 1
    with pytest.raises(AttributionError):
        config.set_session("not-a-uuid")


def test_stale_cache_update_is_ignored() -> None:
    config = RuntimeConfig()
    config.set_attribution("user-1", "")
    identity = config.identity()
    config.set_attribution("user-2", "")
    stored = config.update_cache(IdentityCache(entity_id=10, session_id=11), identity)
    assert stored is False
    assert config.cached() == IdentityCache()
