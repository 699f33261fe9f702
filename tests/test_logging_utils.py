"""Tests for rpc_mock.logging_utils."""

import json
import logging

import pytest
import structlog

from rpc_mock.logging_utils import DEFAULT_LOGGER_NAME, configure_logging, get_logger
from rpc_mock.matcher import NotMatchedError, RequestMatcher
from tests.conftest import json_path, make_mock


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_sets_root_level(self):
        configure_logging("DEBUG", "plain")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("CHATTY", "plain")
        assert logging.getLogger().level == logging.INFO

    def test_json_renderer(self, capsys):
        logger = configure_logging("INFO", "json")
        logger.warning("matching error", method="m", err="boom")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "matching error"
        assert event["level"] == "warning"
        assert event["err"] == "boom"
        assert "timestamp" in event

    def test_level_filters_events(self, capsys):
        logger = configure_logging("ERROR", "json")
        logger.warning("dropped")
        assert "dropped" not in capsys.readouterr().err


class TestDefaultLogger:
    def test_get_logger_supports_warning(self):
        logger = get_logger()
        assert callable(logger.warning)

    def test_default_name(self):
        assert DEFAULT_LOGGER_NAME == "rpc_mock"

    def test_matcher_warnings_reach_structlog(self, capsys):
        configure_logging("WARNING", "json")
        matcher = RequestMatcher(mocks=[make_mock("m", [json_path("$.a[", partial=True)])])

        with pytest.raises(NotMatchedError):
            matcher.match("m", b"{}")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "matching error"
        assert event["method"] == "m"
        assert event["mock_index"] == 0
