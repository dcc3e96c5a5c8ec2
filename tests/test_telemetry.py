"""Tests for structured request logging."""

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

from agreement_gateway.telemetry import log_request, logger, setup_logging


def test_success_logged_as_json(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="gateway"):
        log_request(
            request_id="gw-abc",
            client_key="203.0.113.5",
            outcome="success",
            remaining=4,
            spend_total=0.30000000000000004,
        )

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    data = json.loads(record.getMessage())
    assert data["request_id"] == "gw-abc"
    assert data["client_key"] == "203.0.113.5"
    assert data["remaining"] == 4
    assert data["spend_total"] == 0.3
    assert "error" not in data


def test_rejection_logged_as_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="gateway"):
        log_request(
            request_id="gw-def",
            client_key="unknown",
            outcome="rate_limited",
            error="limit reached",
        )

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    data = json.loads(record.getMessage())
    assert data["outcome"] == "rate_limited"
    assert data["error"] == "limit reached"
    assert "remaining" not in data


def test_upstream_usage_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="gateway"):
        log_request(
            request_id="gw-ghi",
            client_key="10.0.0.1",
            outcome="success",
            upstream_request_id="msg_123",
            input_tokens=900,
            output_tokens=None,
        )

    data = json.loads(caplog.records[-1].getMessage())
    assert data["upstream_request_id"] == "msg_123"
    assert data["usage"] == {"input_tokens": 900, "output_tokens": 0}


@pytest.fixture()
def restore_handlers() -> Iterator[None]:
    before = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_setup_logging_writes_file(tmp_path: Path, restore_handlers: None) -> None:
    log_file = tmp_path / "nested" / "gateway.log"
    setup_logging(str(log_file))

    log_request(request_id="gw-1", client_key="10.0.0.1", outcome="success")
    for handler in logger.handlers:
        handler.flush()

    lines = log_file.read_text().strip().splitlines()
    assert len(lines) == 1
    assert '"request_id": "gw-1"' in lines[0]


def test_setup_logging_does_not_duplicate_handlers(
    tmp_path: Path, restore_handlers: None
) -> None:
    first = tmp_path / "a.log"
    setup_logging(str(first))
    count = len(logger.handlers)

    setup_logging(str(first))
    assert len(logger.handlers) == count

    setup_logging(str(tmp_path / "b.log"))
    assert len(logger.handlers) == count + 1
