"""
Tests for structured logging setup.
"""

from __future__ import annotations

import json
import logging

import structlog

from insider.core.logging import LogContext, configure_logging, get_logger


class TestConfigureLogging:
    def teardown_method(self):
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_json_lines_to_stdout(self, capsys):
        configure_logging("INFO", json_format=True, service="insider-test")
        get_logger("insider.test").info("page_fetched", page=2)
        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "page_fetched"
        assert payload["page"] == 2
        assert payload["service"] == "insider-test"
        assert payload["level"] == "info"

    def test_log_file_is_appended(self, tmp_path):
        log_file = tmp_path / "logs" / "collector.log"
        log_file.parent.mkdir()
        log_file.write_text("previous run\n", encoding="utf-8")
        configure_logging("INFO", json_format=True, log_file=log_file)
        get_logger("insider.test").info("collection_started")
        for handler in logging.getLogger().handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
        assert content.startswith("previous run\n")
        assert "collection_started" in content

    def test_level_filters(self, capsys):
        configure_logging("WARNING", json_format=True)
        get_logger("insider.test").info("quiet")
        assert "quiet" not in capsys.readouterr().out


class TestLogContext:
    def teardown_method(self):
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_binds_and_unbinds(self, capsys):
        configure_logging("INFO", json_format=True)
        log = get_logger("insider.test")
        with LogContext(stage="analyze"):
            log.info("inside")
        log.info("outside")
        lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        assert lines[-2]["stage"] == "analyze"
        assert "stage" not in lines[-1]
