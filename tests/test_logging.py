"""Tests for logging configuration and sinks."""

import json
import logging
import sys

import httpx
import pytest

from t53upload.core.config import Settings
from t53upload.core.logging import (
    NOTIFICATION_LOGGER_NAME,
    CloudLoggingFormatter,
    TelegramHandler,
    setup_logging,
    upload_name_context,
)


@pytest.fixture
def restore_logging():
    """Put root, notification and uvicorn loggers back after setup_logging."""
    names = ["", NOTIFICATION_LOGGER_NAME, "uvicorn", "uvicorn.access", "uvicorn.error"]
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("t53upload.test", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCloudLoggingFormatter:
    """Tests for the JSON formatter."""

    def test_single_line_json(self):
        output = CloudLoggingFormatter().format(make_record("multi\nline"))

        assert "\n" not in output
        entry = json.loads(output)
        assert entry["message"] == "multi\nline"
        assert entry["severity"] == "INFO"
        assert entry["logger"] == "t53upload.test"

    def test_extra_fields_included(self):
        entry = json.loads(CloudLoggingFormatter().format(make_record(http_status=400)))

        assert entry["http_status"] == 400

    def test_upload_name_from_context(self):
        token = upload_name_context.set("report.zip.bsat53")
        try:
            entry = json.loads(CloudLoggingFormatter().format(make_record()))
        finally:
            upload_name_context.reset(token)

        assert entry["upload_name"] == "report.zip.bsat53"

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(CloudLoggingFormatter().format(record))

        assert entry["exception_type"] == "ValueError"
        assert entry["exception_message"] == "boom"
        assert "Traceback" in entry["exception"]


class TestTelegramHandler:
    """Tests for the Telegram sink."""

    def test_posts_message(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        telegram = TelegramHandler("TOKEN", "1234", "t53-upload-server", client=client)

        telegram.emit(make_record("uploaded!"))

        assert len(requests) == 1
        assert requests[0].url.path == "/botTOKEN/sendMessage"
        body = json.loads(requests[0].content)
        assert body["chat_id"] == "1234"
        assert body["text"].startswith("t53-upload-server\n")
        assert "uploaded!" in body["text"]

    def test_delivery_failure_is_not_raised(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        telegram = TelegramHandler("TOKEN", "1234", "app", client=client)
        errors = []
        monkeypatch.setattr(telegram, "handleError", lambda record: errors.append(record))

        telegram.emit(make_record("lost"))

        assert len(errors) == 1


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_local_uses_text_formatter(self, restore_logging):
        setup_logging(Settings(_env_file=None, ENV="local"))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, CloudLoggingFormatter)

    def test_cloud_uses_json_formatter(self, restore_logging):
        setup_logging(Settings(_env_file=None, ENV="production", LOG_LEVEL="WARNING"))

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, CloudLoggingFormatter)

    def test_log_file_handler(self, restore_logging, tmp_path):
        log_file = tmp_path / "logs" / "server.log"

        setup_logging(Settings(_env_file=None, LOG_FILE=log_file))
        logging.getLogger("t53upload.test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "written to file" in log_file.read_text()

    def test_telegram_handlers_attached(self, restore_logging):
        setup_logging(
            Settings(
                _env_file=None,
                LOG_TELEGRAM_BOT_TOKEN="TOKEN",
                LOG_TELEGRAM_CHAT_ID="1234",
            )
        )

        root_telegram = [h for h in logging.getLogger().handlers if isinstance(h, TelegramHandler)]
        notification_telegram = [
            h for h in logging.getLogger(NOTIFICATION_LOGGER_NAME).handlers
            if isinstance(h, TelegramHandler)
        ]
        assert len(root_telegram) == 1
        assert root_telegram[0].level == logging.WARNING
        assert len(notification_telegram) == 1
        assert notification_telegram[0].level == logging.INFO

    def test_no_telegram_without_chat_id(self, restore_logging):
        setup_logging(Settings(_env_file=None, LOG_TELEGRAM_BOT_TOKEN="TOKEN"))

        assert not any(isinstance(h, TelegramHandler) for h in logging.getLogger().handlers)
