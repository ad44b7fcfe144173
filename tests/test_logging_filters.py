"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from kitgate.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_access_codes_and_tokens_are_redacted():
    logger, stream = _capture("test_code_redaction")

    logger.info(
        "redeem_event",
        extra={
            "code": "ABC123",
            "normalized_code": "ABC123",
            "code_hash": "$2b$10$somethingsecret",
            "token": "eyJhbGciOiJIUzI1NiJ9.payload.sig",
            "code_id": "8f14e45f",
        },
    )

    output = stream.getvalue()
    assert "ABC123" not in output
    assert "somethingsecret" not in output
    assert "eyJhbGciOiJIUzI1NiJ9" not in output
    assert "[REDACTED]" in output
    # Identifiers are not secrets
    assert "8f14e45f" in output


def test_api_keys_and_service_key_are_redacted():
    logger, stream = _capture("test_key_redaction")

    logger.info(
        "store_event",
        extra={
            "api_key": "admin-secret",
            "service_role_key": "service-secret",
            "headers": {"Authorization": "Bearer service-secret", "user-agent": "pytest"},
        },
    )

    output = stream.getvalue()
    assert "admin-secret" not in output
    assert "service-secret" not in output
    assert "pytest" in output


def test_safe_fields_pass_through():
    logger, stream = _capture("test_safe_fields")

    logger.info(
        "http.request",
        extra={"path": "/api/pdf/oro", "status_code": 200, "duration_ms": 12.5},
    )

    record = json.loads(stream.getvalue())
    assert record["path"] == "/api/pdf/oro"
    assert record["status_code"] == 200
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_is_attached():
    logger, stream = _capture("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("with_request_id")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_token_in_access_log_arguments_is_scrubbed():
    logger, stream = _capture("test_access_line")

    logger.info(
        '%s - "%s %s HTTP/%s" %d',
        "203.0.113.5:5123",
        "GET",
        "/api/pdf/oro?token=eyJhbGciOiJIUzI1NiJ9.eyJjb2RlSWQiOiIxIn0.c2ln&orientation=ver",
        "1.1",
        200,
    )

    message = json.loads(stream.getvalue())["message"]
    assert "eyJ" not in message
    assert "orientation=ver" in message
    assert "token=[REDACTED]" in message


def test_scrub_text_masks_bare_jwt():
    from kitgate.core.logging import scrub_text

    text = "issued eyJhbGciOiJIUzI1NiJ9.eyJleHAiOjF9.sig-part for code_id=1"

    assert scrub_text(text) == "issued [REDACTED] for code_id=1"
