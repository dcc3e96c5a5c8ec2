"""Upstream adapter for the Anthropic Messages API.

Sends the system prompt and conversation and returns the concatenated text
of the answer. Every call carries an explicit timeout.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from agreement_gateway.config import UpstreamConfig
from agreement_gateway.models import ChatMessage


class UpstreamError(Exception):
    """Raised when the model API answers with an error or no text."""

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


@dataclass
class UpstreamResult:
    """Answer returned by the model API."""

    reply: str
    request_id: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0


async def call_upstream(
    upstream: UpstreamConfig,
    api_key: str,
    system_prompt: str,
    messages: List[ChatMessage],
    client: Optional[httpx.AsyncClient] = None,
) -> UpstreamResult:
    """Forward a conversation to the model API.

    Args:
        upstream: Base URL, model, version and timeout settings.
        api_key: The API key to send in the x-api-key header.
        system_prompt: Instructions plus the embedded document.
        messages: The conversation, already trimmed.
        client: Optional shared client; a short-lived one is created if None.

    Returns:
        An UpstreamResult with the joined text blocks.

    Raises:
        UpstreamError: On an error payload, a non-2xx status, or an empty reply.
        httpx.HTTPError: On transport failures and timeouts.
    """
    url = "{}/v1/messages".format(upstream.base_url.rstrip("/"))
    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": upstream.anthropic_version,
    }
    payload = {
        "model": upstream.model,
        "max_tokens": upstream.max_tokens,
        "system": system_prompt,
        "messages": [{"role": m.role, "content": m.content} for m in messages],
    }

    if client is None:
        async with httpx.AsyncClient(timeout=upstream.timeout_seconds) as own_client:
            resp = await own_client.post(url, json=payload, headers=headers)
    else:
        resp = await client.post(
            url, json=payload, headers=headers, timeout=upstream.timeout_seconds
        )

    return _parse_response(resp)


def _parse_response(resp: httpx.Response) -> UpstreamResult:
    try:
        data: Any = resp.json()
    except ValueError:
        raise UpstreamError(
            "Upstream returned a non-JSON body (HTTP {}).".format(resp.status_code),
            status_code=resp.status_code,
        )

    if not isinstance(data, dict):
        raise UpstreamError(
            "Upstream returned a JSON {} instead of an object (HTTP {}).".format(
                type(data).__name__, resp.status_code
            ),
            status_code=resp.status_code,
        )

    if data.get("error") or resp.status_code >= 400:
        error = data.get("error") or {}
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise UpstreamError(
            "Upstream returned HTTP {}: {}".format(
                resp.status_code, message or "unknown error"
            ),
            status_code=resp.status_code,
        )

    blocks = data.get("content")
    if not isinstance(blocks, list):
        blocks = []
    reply = "\n".join(
        block["text"]
        for block in blocks
        if isinstance(block, dict)
        and block.get("type") == "text"
        and isinstance(block.get("text"), str)
    )
    if not reply:
        raise UpstreamError("Upstream returned no text.", status_code=resp.status_code)

    # usage may be absent or null
    usage = data.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    return UpstreamResult(
        reply=reply,
        request_id=data.get("id"),
        input_tokens=_token_count(usage.get("input_tokens")),
        output_tokens=_token_count(usage.get("output_tokens")),
    )


def _token_count(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0
