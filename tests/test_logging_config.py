"""Tests for structured logging helpers."""

import json
import logging

from guardian_stake.logging_config import (
    JSONFormatter,
    StructuredFormatter,
    WalletContext,
    get_logger,
    setup_logging,
    wallet_var,
)


def _record(msg="Built stake", **extra):
    record = logging.LogRecord("guardian_stake.client", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "guardian_stake.client"
        assert data["message"] == "Built stake"

    def test_extra_data(self):
        data = json.loads(JSONFormatter().format(_record(extra_data={"amount": 5})))
        assert data["extra"] == {"amount": 5}

    def test_wallet_context(self):
        with WalletContext(wallet="2GaN26Fy8bdKETdkU9e4R2qrF4cGFHiY8oRBp2mALjqH", request_id="req-1"):
            data = json.loads(JSONFormatter().format(_record()))
        assert data["wallet"].startswith("2GaN26Fy")
        assert data["request_id"] == "req-1"
        assert wallet_var.get() is None


class TestStructuredFormatter:
    def test_includes_fields(self):
        line = StructuredFormatter(use_color=False).format(_record(extra_data={"shares": 40}))
        assert "Built stake" in line
        assert "shares=40" in line


class TestStructuredLogger:
    def test_keyword_fields_become_extra_data(self, caplog):
        logger = get_logger("guardian_stake.test")
        with caplog.at_level(logging.INFO, logger="guardian_stake.test"):
            logger.info("Built unstake", shares=40)
        assert caplog.records[-1].extra_data == {"shares": 40}


class TestSetupLogging:
    def test_file_handler(self, tmp_path):
        root = setup_logging(level="DEBUG", log_dir=tmp_path, console_output=False)
        try:
            logging.getLogger("guardian_stake.test").info("hello")
            for handler in root.handlers:
                handler.flush()
            line = (tmp_path / "guardian_stake.log").read_text().strip().splitlines()[-1]
            assert json.loads(line)["message"] == "hello"
        finally:
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
