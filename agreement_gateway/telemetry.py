"""Logging and telemetry for the agreement gateway.

Request outcomes go to the "gateway" logger as one JSON object per line,
both on stdout and in an append-only file. Message content is never logged.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("gateway")

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_QUIET_OUTCOMES = frozenset({"success", "honeypot"})


def setup_logging(log_file: str, level: int = logging.INFO) -> None:
    """Attach stdout and file handlers to the gateway logger.

    Safe to call more than once: a handler is only added for a stream or
    file path the logger does not already write to.

    Args:
        log_file: Path to the append-only log file.
        level: Minimum level for the logger and both handlers.
    """
    logger.setLevel(level)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

    log_path = Path(log_file).resolve()
    has_stdout = False
    has_file = False
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            has_file = has_file or Path(handler.baseFilename) == log_path
        elif isinstance(handler, logging.StreamHandler):
            has_stdout = True

    new_handlers = []
    if not has_stdout:
        new_handlers.append(logging.StreamHandler())
    if not has_file:
        os.makedirs(log_path.parent, exist_ok=True)
        new_handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    for handler in new_handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def log_request(
    *,
    request_id: str,
    client_key: str,
    outcome: str,
    remaining: Optional[int] = None,
    spend_total: Optional[float] = None,
    upstream_request_id: Optional[str] = None,
    input_tokens: Optional[int] = None,
    output_tokens: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    """Log a single request outcome as one JSON line.

    Successful and honeypot requests log at INFO, everything else at WARNING.

    Args:
        request_id: Gateway-assigned request ID.
        client_key: The admission key (network address) of the caller.
        outcome: Short outcome label (e.g. "success", "rate_limit_exceeded").
        remaining: Requests left in the caller's window, if known.
        spend_total: Global estimated spend after this request, if known.
        upstream_request_id: Message ID returned by the model API.
        input_tokens: Prompt tokens reported by the model API.
        output_tokens: Completion tokens reported by the model API.
        error: Error message if the request failed.
    """
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "client_key": client_key,
        "outcome": outcome,
    }

    if remaining is not None:
        record["remaining"] = remaining

    if spend_total is not None:
        record["spend_total"] = round(spend_total, 4)

    if upstream_request_id:
        record["upstream_request_id"] = upstream_request_id

    if input_tokens is not None or output_tokens is not None:
        record["usage"] = {
            "input_tokens": input_tokens or 0,
            "output_tokens": output_tokens or 0,
        }

    if error:
        record["error"] = error

    level = logging.INFO if outcome in _QUIET_OUTCOMES else logging.WARNING
    logger.log(level, json.dumps(record))
