"""Logging configuration for the T53 upload server."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

import httpx

from t53upload.core.config import Settings

# Context variable holding the file name of the upload being processed
upload_name_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "upload_name", default=None
)

NOTIFICATION_LOGGER_NAME = "t53upload.notifications"

LOG_FILE_MAX_BYTES = 512 * 1000 * 1000  # 512 MB
LOG_FILE_BACKUP_COUNT = 10

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_RECORD_FIELDS = frozenset(
    [
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName",
        "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName",
    ]
)


class CloudLoggingFormatter(logging.Formatter):
    """JSON formatter producing one object per line.

    Exceptions and tracebacks are included as strings within the JSON
    structure so log shippers never split a record across lines.
    """

    SEVERITY_MAP = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON.

        Args:
            record: Log record to format

        Returns:
            Single-line JSON string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        upload_name = upload_name_context.get()
        if upload_name:
            log_entry["upload_name"] = upload_name

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_FIELDS:
                log_entry[key] = value

        if record.exc_info:
            exc_text = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception"] = exc_text
            log_entry["exception_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Unknown"
            log_entry["exception_message"] = str(record.exc_info[1]) if record.exc_info[1] else ""

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class TelegramHandler(logging.Handler):
    """Sends log records to a Telegram chat through the Bot API.

    Delivery problems go through ``handleError`` so a Telegram outage
    never breaks the request that emitted the record.
    """

    API_URL = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        application_name: str,
        level: int = logging.NOTSET,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(level)
        self.url = self.API_URL.format(token=bot_token)
        self.chat_id = chat_id
        self.application_name = application_name
        self._client = client or httpx.Client(timeout=10.0)
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s\n%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = f"{self.application_name}\n{self.format(record)}"
            response = self._client.post(
                self.url, json={"chat_id": self.chat_id, "text": text}
            )
            response.raise_for_status()
        except httpx.HTTPError:
            self.handleError(record)

    def close(self) -> None:
        self._client.close()
        super().close()


def _build_telegram_handler(settings: Settings, level: int) -> TelegramHandler:
    return TelegramHandler(
        bot_token=settings.LOG_TELEGRAM_BOT_TOKEN,
        chat_id=settings.LOG_TELEGRAM_CHAT_ID,
        application_name=settings.SERVICE_NAME,
        level=level,
    )


def setup_logging(settings: Settings) -> None:
    """Configure logging for the application.

    Status messages go to stdout (plain text for local development,
    JSON everywhere else), to LOG_FILE when configured, and warnings
    and above to Telegram when credentials are present. Upload
    notifications additionally reach Telegram at INFO.
    """
    log_level = logging.DEBUG if settings.ENV == "local" else getattr(
        logging, settings.LOG_LEVEL.upper(), logging.INFO
    )

    handler = logging.StreamHandler(sys.stdout)
    if settings.ENV == "local":
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = CloudLoggingFormatter()
    handler.setFormatter(formatter)

    handlers: list[logging.Handler] = [handler]

    if settings.LOG_FILE is not None:
        settings.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(CloudLoggingFormatter())
        handlers.append(file_handler)

    if settings.telegram_enabled:
        handlers.append(_build_telegram_handler(settings, logging.WARNING))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    for h in handlers:
        root_logger.addHandler(h)

    notification_logger = logging.getLogger(NOTIFICATION_LOGGER_NAME)
    notification_logger.setLevel(logging.INFO)
    notification_logger.handlers.clear()
    if settings.telegram_enabled:
        # INFO-only so warnings are not posted twice through the root handler
        telegram = _build_telegram_handler(settings, logging.INFO)
        telegram.addFilter(lambda record: record.levelno < logging.WARNING)
        notification_logger.addHandler(telegram)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        for h in handlers:
            uvicorn_logger.addHandler(h)
        uvicorn_logger.propagate = False

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "file_logging": settings.LOG_FILE is not None,
            "telegram_logging": settings.telegram_enabled,
        },
    )
