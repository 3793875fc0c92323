import json
import logging

import pytest
import structlog

from memori.config import get_settings
from memori.errors import TransientConflictError
from memori.logging import bind_context, clear_context, configure_logging
from memori.memori import Memori
from memori.types import Message


@pytest.fixture
def restore_memori_logger():
    yield
    logger = logging.getLogger("memori")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    clear_context()
    structlog.reset_defaults()


def test_json_output_includes_bound_context(
    restore_memori_logger: None, capsys: pytest.CaptureFixture[str]
) -> None:
    configure_logging("DEBUG", json_output=True)
    bind_context(entity_id="user-123")
    logging.getLogger("memori.writer").info("Stored %d messages", 2)

    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "Stored 2 messages"
    assert payload["level"] == "info"
    assert payload["logger"] == "memori.writer"
    assert payload["entity_id"] == "user-123"


def test_level_filters_memori_records(
    restore_memori_logger: None, capsys: pytest.CaptureFixture[str]
) -> None:
    configure_logging("warning", json_output=True)
    logging.getLogger("memori.augmentation").info("hidden")
    logging.getLogger("memori.augmentation").warning("shown")
    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_level_defaults_to_log_level_setting(
    restore_memori_logger: None,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    get_settings.cache_clear()
    configure_logging(json_output=True)
    logging.getLogger("memori.writer").warning("hidden")
    logging.getLogger("memori.writer").error("shown")
    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_writer_logs_carry_attribution_context(
    restore_memori_logger: None,
    memori_sqlite: Memori,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    configure_logging("DEBUG", json_output=True)
    memori_sqlite.attribution("user-123", "proc-abc")
    messages = memori_sqlite.storage.driver.message
    real_create = messages.create
    failures = [TransientConflictError("sqlite: database is locked")]

    def flaky_create(*args):
        if failures:
            raise failures.pop()
        return real_create(*args)

    monkeypatch.setattr(messages, "create", flaky_create)
    memori_sqlite.record([Message(role="user", content="hello")])

    lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
    conflict = next(line for line in lines if line["event"].startswith("Transient storage"))
    assert conflict["entity_id"] == "user-123"
    assert conflict["process_id"] == "proc-abc"
    assert conflict["session_id"] == memori_sqlite.session_id
    assert structlog.contextvars.get_contextvars() == {}
