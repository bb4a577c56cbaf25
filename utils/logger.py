"""
Logging configuration for the complaint desk.

Console output is coloured in development; every environment also writes a
rotating text log, an error-only log and a JSON log under ``LOG_DIR``.
"""
import logging
import logging.config
import os
import time
from datetime import datetime, timezone

from pythonjsonlogger.json import JsonFormatter
from starlette.middleware.base import BaseHTTPMiddleware

from config import ENVIRONMENT, LOG_DIR, LOG_LEVEL

APP_LOGGER = "complaint_desk"


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter that stamps environment and request context."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = ENVIRONMENT
        for key in ("user_id", "complaint_id", "method", "path", "status_code"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)


def build_logging_config(log_dir=LOG_DIR, level=LOG_LEVEL):
    development = ENVIRONMENT == "development"
    handlers = ["console", "file", "error_file", "json_file"]

    def rotating(filename, handler_level, formatter):
        return {
            "level": handler_level,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": os.path.join(log_dir, filename),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 10,
            "formatter": formatter,
            "encoding": "utf8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "colored": {
                "()": "colorlog.ColoredFormatter",
                "fmt": "%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "log_colors": {
                    "DEBUG": "blue",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            },
            "json": {
                "()": CustomJsonFormatter,
                "fmt": "%(timestamp)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "level": "DEBUG" if development else level,
                "class": "logging.StreamHandler",
                "formatter": "colored" if development else "standard",
            },
            "file": rotating("app.log", "INFO", "standard"),
            "error_file": rotating("error.log", "ERROR", "standard"),
            "json_file": rotating("app.json.log", "INFO", "json"),
        },
        "loggers": {
            APP_LOGGER: {"handlers": handlers, "level": level, "propagate": False},
            "uvicorn": {"handlers": ["console", "file"], "level": "INFO", "propagate": False},
            "sqlalchemy.engine": {"handlers": ["console", "file"], "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(log_dir=LOG_DIR, level=LOG_LEVEL):
    os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level))
    logger = logging.getLogger(APP_LOGGER)
    logger.info("Logging initialized with level: %s", level)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{APP_LOGGER}.{name}")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs the start and completion of every request with its duration."""

    def __init__(self, app):
        super().__init__(app)
        self.logger = get_logger("http")

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        path = request.url.path
        self.logger.info("%s %s - Started", request.method, path)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000
        self.logger.info(
            "%s %s - %s - %.0fms",
            request.method,
            path,
            response.status_code,
            duration_ms,
            extra={"method": request.method, "path": path, "status_code": response.status_code},
        )
        return response
