"""Structured logging for the access service.

Log lines are JSON objects built from the record's ``extra`` fields. Two
kinds of secrets flow through this service and must never reach a log sink:

- access codes, code hashes and API keys, which only ever appear as named
  ``extra`` fields and are redacted by key;
- PDF access tokens, which also travel in URLs (``?token=...``) and can
  therefore show up inside free text such as uvicorn's access log line. Those
  are scrubbed from string values and message arguments by pattern.

The current request id is kept in a context variable and stamped on every
record emitted while a request is being served.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from kitgate.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "code",
        "raw_code",
        "normalized_code",
        "code_hash",
        "token",
        "access_token",
        "api_key",
        "x-api-key",
        "apikey",
        "authorization",
        "secret",
        "password",
        "service_role_key",
        "cookie",
        "set-cookie",
    }
)

# ``token=<value>`` in query strings and bare compact JWTs (header.payload.sig)
_TOKEN_PARAM = re.compile(r"(?i)\b(token=)[^&\s\"']+")
_COMPACT_JWT = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")

# Standard LogRecord attributes; everything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def scrub_text(text: str) -> str:
    """Mask token query parameters and compact JWTs inside free text.

    Examples:
        >>> scrub_text("GET /api/pdf/oro?token=abc.def.ghi&orientation=ver")
        'GET /api/pdf/oro?token=[REDACTED]&orientation=ver'
    """
    text = _TOKEN_PARAM.sub(rf"\g<1>{REDACTED}", text)
    return _COMPACT_JWT.sub(REDACTED, text)


def redact(value: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Return ``value`` with sensitive mapping keys masked and strings scrubbed."""

    keys = sensitive_keys if isinstance(sensitive_keys, (set, frozenset)) else set(sensitive_keys)
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in keys else redact(v, keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, keys) for v in value)
    return value


def record_extras(record: LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=`` (and by filters) on a record."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    """Stamp the context's request id on records that lack one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact secrets on the record itself so every formatter sees safe data.

    Extra fields are masked by key. Message arguments are scrubbed as text,
    which covers access log lines that embed the request URL.
    """

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in record_extras(record).items():
            if key.lower() in self.sensitive_keys:
                setattr(record, key, REDACTED)
            else:
                setattr(record, key, redact(value, self.sensitive_keys))

        if isinstance(record.msg, str):
            record.msg = scrub_text(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(redact(arg, self.sensitive_keys) for arg in record.args)
        elif isinstance(record.args, Mapping):
            record.args = redact(record.args, self.sensitive_keys)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self._redactor = SensitiveDataFilter(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        # Redact again here so a handler without the filter is still safe
        self._redactor.filter(record)

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = record_extras(record)
        if extras.get("request_id") is None:
            extras.pop("request_id", None)
            request_id = get_request_id()
            if request_id:
                payload["request_id"] = request_id
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = scrub_text(self.formatException(record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """stdout handler, or a (rotating) file handler when ``LOG_OUTPUT=file``."""

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/kitgate.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the redacting handler on the root logger.

    Safe to call more than once; previous root handlers are replaced.
    """

    cfg = log_settings or settings.log
    level = logging.DEBUG if settings.app.debug else getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # uvicorn keeps its own handlers; its access lines carry ?token= query strings
    access_logger = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, SensitiveDataFilter) for f in access_logger.filters):
        access_logger.addFilter(SensitiveDataFilter())
    logging.getLogger("uvicorn").propagate = False
    access_logger.propagate = False

    # httpx logs every request URL at INFO, including PostgREST filters
    logging.getLogger("httpx").setLevel(logging.WARNING)
