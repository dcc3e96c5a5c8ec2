"""Configuration loader for the agreement gateway.

Reads a JSON config file containing admission quotas, the upstream model
API settings, request gate limits, and the paths of the source document and
its page manifest. Secrets are resolved from environment variables.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from agreement_gateway.admission import AdmissionConfig


@dataclass
class UpstreamConfig:
    """Settings for the Anthropic Messages API."""

    base_url: str = "https://api.anthropic.com"
    api_key_env: str = "ANTHROPIC_API_KEY"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    anthropic_version: str = "2023-06-01"
    timeout_seconds: float = 60.0

    @property
    def api_key(self) -> Optional[str]:
        """Resolve the API key from the environment variable."""
        return os.getenv(self.api_key_env)


@dataclass
class GateConfig:
    """Access code and request-shape limits enforced before admission."""

    access_code_env: str = "ACCESS_CODE"
    max_history_messages: int = 10
    max_message_chars: int = 2000
    max_first_message_chars: int = 500

    @property
    def access_code(self) -> Optional[str]:
        """Resolve the shared access code from the environment variable."""
        return os.getenv(self.access_code_env)


@dataclass
class GatewayConfig:
    """Top-level gateway configuration."""

    document_file: str
    source_manifest: str
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    log_file: str = "logs/gateway.log"


def _positive(value: Any, name: str) -> Any:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
        raise ValueError("{} must be a positive number, got {!r}".format(name, value))
    return value


def _positive_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(
            "{} must be a positive integer, got {!r}".format(name, value)
        )
    return value


def load_config(path: Union[str, Path]) -> GatewayConfig:
    """Load gateway configuration from a JSON file.

    Relative document and manifest paths are resolved against the config
    file's directory.

    Args:
        path: Path to the JSON config file.

    Returns:
        A fully resolved GatewayConfig instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the config file contains invalid data.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw: Dict[str, Any] = json.load(f)

    for required in ("document_file", "source_manifest"):
        if not raw.get(required):
            raise ValueError("Config is missing required key '{}'".format(required))

    admission_raw = raw.get("admission", {})
    grace = admission_raw.get("eviction_grace_seconds")
    admission = AdmissionConfig(
        max_requests_per_window=_positive_int(
            admission_raw.get("max_requests_per_window", 20),
            "admission.max_requests_per_window",
        ),
        window_seconds=_positive(
            admission_raw.get("window_seconds", 24 * 60 * 60),
            "admission.window_seconds",
        ),
        daily_spend_cap=_positive(
            admission_raw.get("daily_spend_cap", 50.0), "admission.daily_spend_cap"
        ),
        estimated_cost_per_query=_positive(
            admission_raw.get("estimated_cost_per_query", 0.15),
            "admission.estimated_cost_per_query",
        ),
        eviction_grace_seconds=(
            None
            if grace is None
            else _positive(grace, "admission.eviction_grace_seconds")
        ),
    )

    upstream_raw = raw.get("upstream", {})
    upstream = UpstreamConfig(
        base_url=upstream_raw.get("base_url", "https://api.anthropic.com"),
        api_key_env=upstream_raw.get("api_key_env", "ANTHROPIC_API_KEY"),
        model=upstream_raw.get("model", "claude-sonnet-4-20250514"),
        max_tokens=_positive_int(
            upstream_raw.get("max_tokens", 4096), "upstream.max_tokens"
        ),
        anthropic_version=upstream_raw.get("anthropic_version", "2023-06-01"),
        timeout_seconds=_positive(
            upstream_raw.get("timeout_seconds", 60.0), "upstream.timeout_seconds"
        ),
    )

    gate_raw = raw.get("gate", {})
    gate = GateConfig(
        access_code_env=gate_raw.get("access_code_env", "ACCESS_CODE"),
        max_history_messages=_positive_int(
            gate_raw.get("max_history_messages", 10), "gate.max_history_messages"
        ),
        max_message_chars=_positive_int(
            gate_raw.get("max_message_chars", 2000), "gate.max_message_chars"
        ),
        max_first_message_chars=_positive_int(
            gate_raw.get("max_first_message_chars", 500),
            "gate.max_first_message_chars",
        ),
    )

    base_dir = path.parent
    return GatewayConfig(
        document_file=str(base_dir / raw["document_file"]),
        source_manifest=str(base_dir / raw["source_manifest"]),
        admission=admission,
        upstream=upstream,
        gate=gate,
        log_file=raw.get("log_file", "logs/gateway.log"),
    )
