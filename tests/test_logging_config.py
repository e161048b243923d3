"""
Tests for logging setup
"""

import io
import json
import logging

import pytest

from ignite.logging_config import QUEUE_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    queue_level = logging.getLogger(QUEUE_LOGGER).level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger(QUEUE_LOGGER).setLevel(queue_level)


def last_line(stream):
    return stream.getvalue().strip().splitlines()[-1]


class TestConfigureLogging:

    def test_json_includes_request_context(self):
        stream = io.StringIO()
        configure_logging(level="debug", format_style="json", stream=stream)

        logging.getLogger("ignite.api.queue").warning("retrying", extra={"request_id": "req_1_abc"})

        entry = json.loads(last_line(stream))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "ignite.api.queue"
        assert entry["message"] == "retrying"
        assert entry["context"] == {"request_id": "req_1_abc"}

    def test_json_without_context(self):
        stream = io.StringIO()
        configure_logging(level="INFO", format_style="json", stream=stream)

        logging.getLogger("ignite.test").info("plain")

        assert "context" not in json.loads(last_line(stream))

    def test_invalid_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.delenv("IGNITE_LOG_LEVEL", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        configure_logging(stream=io.StringIO())

        assert logging.getLogger().level == logging.INFO

    def test_queue_level_override(self, monkeypatch):
        monkeypatch.setenv("IGNITE_QUEUE_LOG_LEVEL", "error")

        configure_logging(level="DEBUG", stream=io.StringIO())

        assert logging.getLogger(QUEUE_LOGGER).level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.WARNING
