"""Tests for the JSON log formatter."""

import io
import json
import logging

import pytest

from scripts.migration.logging_config import configure_logging


@pytest.fixture
def stream():
    buf = io.StringIO()
    yield buf
    logger = logging.getLogger("migration")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def lines(buf):
    return [json.loads(line) for line in buf.getvalue().splitlines()]


class TestConfigureLogging:
    def test_context_fields_are_merged(self, stream):
        configure_logging("INFO", stream=stream)
        logging.getLogger("migration.engine").warning(
            "User failed: %s", "boom", extra={"user_id": "u1", "category": "api_error"}
        )

        [line] = lines(stream)
        assert line["message"] == "User failed: boom"
        assert line["logger"] == "migration.engine"
        assert (line["user_id"], line["category"]) == ("u1", "api_error")
        assert "records" not in line

    def test_level_filters(self, stream):
        configure_logging("warning", stream=stream)
        logging.getLogger("migration.paginator").info("Fetched 3 users")
        assert lines(stream) == []

    def test_exception_is_included(self, stream):
        configure_logging("INFO", stream=stream)
        try:
            raise KeyError("id")
        except KeyError:
            logging.getLogger("migration.engine").exception("Unexpected failure for user")

        [line] = lines(stream)
        assert "KeyError" in line["exception"]

    def test_reconfigure_replaces_handler(self, stream):
        configure_logging("INFO", stream=io.StringIO())
        configure_logging("INFO", stream=stream)
        assert len(logging.getLogger("migration").handlers) == 1
