from __future__ import annotations

import logging

from app.middleware.request_id import RequestIdLogFilter

LOGGER_NAME = "blob_upload"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"


def get_logger(suffix: str = "") -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{suffix}" if suffix else LOGGER_NAME)


def configure_logging(level: str = "INFO") -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level.upper())
    if not any(getattr(h, "_blob_upload", False) for h in log.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdLogFilter())
        handler._blob_upload = True  # type: ignore[attr-defined]
        log.addHandler(handler)
    log.propagate = False
    return log
