"""Shared test fixtures for the agreement gateway tests."""

import json
from pathlib import Path
from typing import Dict, Optional

import pytest

from agreement_gateway.config import GatewayConfig, load_config

MANIFEST = """\
title: Test Agreement 2025
pdf_url: https://example.com/agreement.pdf
clause_pages:
  "1": 5
  "12": 10
  "26": 27
schedule_pages:
  "1": 74
"""

DOCUMENT = "TEST AGREEMENT\n\n1. Title\nThis agreement is the Test Agreement 2025.\n"


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_config(tmp_path: Path, overrides: Optional[Dict] = None) -> str:
    """Write a minimal test config, manifest and document; return the config path."""
    (tmp_path / "agreement.txt").write_text(DOCUMENT)
    (tmp_path / "source.yaml").write_text(MANIFEST)

    config = {
        "document_file": "agreement.txt",
        "source_manifest": "source.yaml",
        "admission": {
            "max_requests_per_window": 3,
            "window_seconds": 3600,
            "daily_spend_cap": 1.0,
            "estimated_cost_per_query": 0.25,
        },
        "upstream": {
            "base_url": "https://api.example.com",
            "api_key_env": "TEST_UPSTREAM_KEY",
            "model": "test-model",
            "timeout_seconds": 5,
        },
        "gate": {
            "access_code_env": "TEST_ACCESS_CODE",
            "max_history_messages": 4,
            "max_message_chars": 200,
            "max_first_message_chars": 100,
        },
        "log_file": str(tmp_path / "test.log"),
    }
    if overrides:
        config.update(overrides)

    path = tmp_path / "test_config.json"
    path.write_text(json.dumps(config))
    return str(path)


@pytest.fixture()
def test_config_path(tmp_path: Path) -> str:
    """Return the path to a temporary test config file."""
    return _make_config(tmp_path)


@pytest.fixture()
def test_config(test_config_path: str) -> GatewayConfig:
    """Return a loaded test GatewayConfig."""
    return load_config(test_config_path)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
