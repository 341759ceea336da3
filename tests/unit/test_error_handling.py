"""
Unit tests for talent_match/common/error_handling.py
"""

import logging

import pytest

from talent_match.common.error_handling import ErrorCollector, log_on_exception


class TestErrorCollector:

    def test_empty_collector(self):
        errors = ErrorCollector()

        assert errors.failed_sources() == []
        assert errors.describe() == ""
        assert not errors.all_failed(["github"])

    def test_records_exception_type(self):
        errors = ErrorCollector()
        errors.add_error("portfolio", "fetch", "timed out", exception=TimeoutError())

        assert errors.errors[0].exception_type == "TimeoutError"

    def test_failed_sources_in_first_failure_order(self):
        errors = ErrorCollector()
        errors.add_error("portfolio", "fetch", "HTTP 500")
        errors.add_error("github", "fetch", "HTTP 503")
        errors.add_error("portfolio", "fetch", "HTTP 502")

        assert errors.failed_sources() == ["portfolio", "github"]

    def test_all_failed(self):
        errors = ErrorCollector()
        errors.add_error("github", "fetch", "HTTP 503")

        assert errors.all_failed(["github"])
        assert not errors.all_failed(["github", "portfolio"])
        assert not errors.all_failed([])

    def test_describe(self):
        errors = ErrorCollector()
        errors.add_error("github", "fetch", "HTTP 503")
        errors.add_error("portfolio", "fetch", "timed out")

        assert errors.describe() == "github: HTTP 503; portfolio: timed out"


class TestLogOnException:

    def test_logs_and_reraises(self, caplog):
        logger = logging.getLogger("test.error_handling")

        with caplog.at_level(logging.ERROR, logger="test.error_handling"):
            with pytest.raises(RuntimeError):
                with log_on_exception(logger, "record save", level=logging.ERROR):
                    raise RuntimeError("store unavailable")

        assert "[record save] Failed: store unavailable" in caplog.text

    def test_silent_on_success(self, caplog):
        logger = logging.getLogger("test.error_handling")

        with caplog.at_level(logging.DEBUG, logger="test.error_handling"):
            with log_on_exception(logger, "record save"):
                pass

        assert caplog.text == ""
