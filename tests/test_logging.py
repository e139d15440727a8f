"""Tests for the structured JSON-lines execution log."""

import json
import logging
import os
import threading
from datetime import datetime

from langbox.core.logging import JsonLinesHandler, get_logger, setup_logging


def _read_events(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_get_logger_namespaces_names():
    assert get_logger("langbox.core.config").name == "langbox.core.config"
    assert get_logger("plugin").name == "langbox.plugin"


def test_records_are_persisted_with_context(tmp_path):
    log_path = tmp_path / "logs" / "langbox.log"
    setup_logging(log_path=log_path)
    logger = get_logger("tests")

    logger.info("ran file", extra={"context": {"language": "go", "timeout": 30}})
    logger.warning("cpu high")
    logger.debug("details")
    logger.error("failed", extra={"context": {"error": "PathError"}})

    events = _read_events(log_path)
    assert [event["level"] for event in events] == ["INFO", "WARN", "DEBUG", "ERROR"]
    first = events[0]
    assert first["message"] == "ran file"
    assert first["context"] == {"language": "go", "timeout": 30}
    assert first["pid"] == os.getpid()
    assert first["logger"] == "langbox.tests"
    assert datetime.fromisoformat(first["timestamp"]).tzinfo is not None
    assert events[1]["context"] == {}


def test_setup_logging_replaces_previous_sinks(tmp_path):
    first = tmp_path / "first.log"
    second = tmp_path / "second.log"
    setup_logging(log_path=first)
    setup_logging(log_path=second)

    get_logger("tests").info("only once")

    assert not first.exists() or first.read_text() == ""
    assert len(_read_events(second)) == 1
    handlers = [h for h in logging.getLogger("langbox").handlers if isinstance(h, JsonLinesHandler)]
    assert len(handlers) == 1


def test_console_mirror_is_optional(tmp_path):
    root = setup_logging(log_path=tmp_path / "a.log", log_to_console=True)
    assert len(root.handlers) == 2
    root = setup_logging(log_path=tmp_path / "a.log", log_to_console=False)
    assert len(root.handlers) == 1


def test_concurrent_appends_do_not_corrupt_lines(tmp_path):
    log_path = tmp_path / "concurrent.log"
    setup_logging(log_path=log_path)
    logger = get_logger("tests.concurrent")

    def _worker(worker_id: int) -> None:
        for i in range(50):
            logger.info(f"event {i}", extra={"context": {"worker": worker_id, "payload": "x" * 200}})

    threads = [threading.Thread(target=_worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    events = _read_events(log_path)
    assert len(events) == 400
    assert {event["context"]["worker"] for event in events} == set(range(8))
