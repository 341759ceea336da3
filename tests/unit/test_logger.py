"""
Unit tests for talent_match/common/logger.py
"""

import logging

import pytest

from talent_match.common.logger import RunLogger, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRunLogger:

    def test_prefix_contains_run_candidate_and_component(self, caplog):
        log = get_logger("test.run", run_id="0123456789abcdef", candidate_id="cand-1", component="github")

        with caplog.at_level(logging.INFO, logger="test.run"):
            log.info("Fetched profile")

        assert "[run:01234567] [candidate:cand-1] [github] Fetched profile" in caplog.text

    def test_no_prefix_without_context(self, caplog):
        log = get_logger("test.run")

        with caplog.at_level(logging.INFO, logger="test.run"):
            log.warning("plain")

        assert caplog.records[-1].getMessage() == "plain"

    def test_bind_keeps_run_context(self, caplog):
        log = get_logger("test.run", run_id="feedbeef00", candidate_id="cand-9")

        with caplog.at_level(logging.INFO, logger="test.run"):
            log.bind("portfolio").error("HTTP 500")

        assert "[run:feedbeef] [candidate:cand-9] [portfolio] HTTP 500" in caplog.text

    def test_exception_keeps_traceback(self, caplog):
        log = get_logger("test.run", candidate_id="cand-1")

        with caplog.at_level(logging.ERROR, logger="test.run"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                log.exception("Analysis crashed")

        record = caplog.records[-1]
        assert record.getMessage() == "[candidate:cand-1] Analysis crashed"
        assert record.exc_info is not None

    def test_is_a_logger_adapter(self):
        assert isinstance(get_logger("test.run"), logging.LoggerAdapter)
        assert isinstance(get_logger("test.run").bind("github"), RunLogger)


class TestSetupLogging:

    def test_configures_single_root_handler(self, restore_root_logger):
        setup_logging("warning")
        setup_logging("DEBUG")

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.DEBUG

    def test_debug_level_reaches_run_loggers(self, restore_root_logger):
        setup_logging("DEBUG")
        assert get_logger("test.run.debug", run_id="abc").isEnabledFor(logging.DEBUG)

        setup_logging("INFO")
        assert not get_logger("test.run.debug", run_id="abc").isEnabledFor(logging.DEBUG)

    def test_json_format(self, restore_root_logger):
        setup_logging("INFO", format="json")

        formatter = restore_root_logger.handlers[0].formatter
        assert formatter._fmt.startswith('{"time"')

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        setup_logging("chatty")
        assert restore_root_logger.level == logging.INFO
