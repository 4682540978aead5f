"""Tests for logging configuration."""

import json
import logging

from enclosure.logging_config import JSONFormatter, get_context_logger, setup_logging


class TestJSONFormatter:
    """JSONFormatter output."""

    def test_includes_context(self):
        record = logging.LogRecord("enclosure.test", logging.INFO, __file__, 1, "hello %s", ("x",), None)
        record.context = {"batch_id": "B"}

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello x"
        assert data["level"] == "INFO"
        assert data["logger"] == "enclosure.test"
        assert data["context"] == {"batch_id": "B"}


class TestContextLogger:
    """get_context_logger."""

    def test_context_attached_to_records(self, caplog):
        log = get_context_logger("enclosure.test", batch_id="B")

        with caplog.at_level(logging.INFO, logger="enclosure.test"):
            log.info("uploading", extra={"context": {"index": 2}})

        record = caplog.records[0]
        assert record.context == {"batch_id": "B", "index": 2}


class TestSetupLogging:
    """setup_logging."""

    def test_writes_json_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(log_level="DEBUG", log_file=str(log_file))

        logging.getLogger("enclosure.test").info("written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["message"] == "written"
        assert logging.getLogger("httpx").level == logging.WARNING

        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
