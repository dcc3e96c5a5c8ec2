"""FastAPI application for the agreement gateway.

Provides a single /api/chat endpoint that checks the access code, screens
obvious bot traffic, validates the conversation, asks the admission
controller for permission, forwards the conversation to the model API with
the full source document in the system prompt, and returns the answer with
the caller's remaining quota and the citations found in it.

Request flow:
1. Content type and access code
2. Honeypot and first-message screening
3. Upstream key configured
4. History trimming, then shape validation of what is kept
5. Admission check (per-client window, global spend cap)
6. Upstream call
7. Spend recorded only after a successful upstream call
"""

import os
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from agreement_gateway.admission import UNKNOWN_CLIENT, AdmissionController
from agreement_gateway.auth import AuthenticationError, verify_access_code
from agreement_gateway.citations import SourceDocument, load_source_document
from agreement_gateway.config import GatewayConfig, load_config
from agreement_gateway.models import (
    ChatRequest,
    ChatResponse,
    ErrorDetail,
    ErrorResponse,
)
from agreement_gateway.prompt import build_system_prompt, load_document, trim_history
from agreement_gateway.provider import UpstreamError, call_upstream
from agreement_gateway.screening import (
    HONEYPOT_REPLY,
    SuspiciousRequest,
    check_first_message,
    is_honeypot,
)
from agreement_gateway.telemetry import log_request, logger, setup_logging

CONFIG_PATH = os.getenv("GATEWAY_CONFIG", "config/example.config.json")

HONEYPOT_REMAINING = 99

_UPSTREAM_UNAVAILABLE = (
    "The AI service is temporarily unavailable. Please try again in a moment."
)


@dataclass
class GatewayState:
    """Everything a request handler needs, owned by one app instance."""

    config: GatewayConfig
    admission: AdmissionController
    source: SourceDocument
    system_prompt: str


def build_state(
    config: GatewayConfig, clock: Callable[[], float] = time.time
) -> GatewayState:
    """Load the document and manifest and create a fresh admission controller."""
    source = load_source_document(config.source_manifest)
    document = load_document(config.document_file)
    return GatewayState(
        config=config,
        admission=AdmissionController(config=config.admission, clock=clock),
        source=source,
        system_prompt=build_system_prompt(document, source.title),
    )


def get_state(application: FastAPI) -> GatewayState:
    """Return the app's gateway state (lazy-init from CONFIG_PATH)."""
    state: Optional[GatewayState] = getattr(application.state, "gateway", None)
    if state is None:
        state = build_state(load_config(CONFIG_PATH))
        application.state.gateway = state
    return state


def client_key_from_request(request: Request) -> str:
    """Derive the admission key from proxy headers or the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client is not None and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def _error_response(
    status: int,
    error_type: str,
    message: str,
    remaining: Optional[int] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body = ErrorResponse(
        error=ErrorDetail(type=error_type, message=message),
        remaining=remaining,
    )
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


router = APIRouter()


@router.post("/api/chat", response_model=None)
async def chat(request: Request) -> JSONResponse:
    """Answer one question about the source document."""
    state = get_state(request.app)
    config = state.config
    request_id = "gw-{}".format(uuid.uuid4().hex[:12])
    client_key = client_key_from_request(request)

    def reject(
        status: int,
        outcome: str,
        message: str,
        remaining: Optional[int] = None,
    ) -> JSONResponse:
        log_request(
            request_id=request_id,
            client_key=client_key,
            outcome=outcome,
            error=message,
        )
        return _error_response(status, outcome, message, remaining)

    # --- Gate ---
    if "application/json" not in request.headers.get("content-type", ""):
        return reject(400, "invalid_request", "Invalid request.")

    try:
        verify_access_code(
            request.headers.get("x-access-code"), config.gate.access_code
        )
    except AuthenticationError as exc:
        return reject(403, "invalid_access_code", exc.detail)

    try:
        body = await request.json()
    except ValueError:
        return reject(400, "invalid_request", "Invalid request.")
    if not isinstance(body, dict):
        return reject(400, "invalid_request", "Invalid request.")

    # --- Screening ---
    if is_honeypot(body):
        log_request(request_id=request_id, client_key=client_key, outcome="honeypot")
        response = ChatResponse(reply=HONEYPOT_REPLY, remaining=HONEYPOT_REMAINING)
        return JSONResponse(status_code=200, content=response.model_dump())

    try:
        check_first_message(body, config.gate.max_first_message_chars)
    except SuspiciousRequest as exc:
        return reject(429, "suspicious_request", exc.detail)

    api_key = config.upstream.api_key
    if not api_key:
        logger.error("%s is not set in the environment", config.upstream.api_key_env)
        return reject(
            500,
            "service_not_configured",
            "Service not configured. Please contact the administrator.",
        )

    # --- Validation ---
    raw_messages = body.get("messages")
    if not isinstance(raw_messages, list) or not raw_messages:
        return reject(
            400,
            "invalid_request",
            "Invalid request. Messages array is required.",
        )

    # Only the messages that will be forwarded are validated.
    recent = trim_history(raw_messages, config.gate.max_history_messages)
    try:
        chat_request = ChatRequest.model_validate({"messages": recent})
    except ValidationError:
        return reject(400, "invalid_request", "Invalid message format.")

    messages = chat_request.messages
    limit = config.gate.max_message_chars
    if any(len(m.content) > limit for m in messages):
        return reject(
            400,
            "message_too_long",
            "Message too long. Please keep questions under {} characters.".format(
                limit
            ),
        )

    # --- Admission ---
    decision = state.admission.check(client_key)
    if not decision.allowed:
        return reject(429, "rate_limit_exceeded", decision.reason or "", remaining=0)

    # --- Upstream call ---
    try:
        result = await call_upstream(
            config.upstream, api_key, state.system_prompt, messages
        )
    except UpstreamError as exc:
        logger.error("Upstream error for %s: %s", request_id, exc.detail)
        return reject(502, "upstream_error", _UPSTREAM_UNAVAILABLE)
    except httpx.HTTPError as exc:
        logger.error("Upstream transport error for %s: %r", request_id, exc)
        return reject(502, "upstream_error", _UPSTREAM_UNAVAILABLE)
    except Exception:
        logger.exception("Unexpected error while serving %s", request_id)
        return reject(
            500,
            "internal_error",
            "Something went wrong. Please try again in a moment.",
        )

    state.admission.record_spend()

    log_request(
        request_id=request_id,
        client_key=client_key,
        outcome="success",
        remaining=decision.remaining,
        spend_total=state.admission.spend_total,
        upstream_request_id=result.request_id,
        input_tokens=result.input_tokens,
        output_tokens=result.output_tokens,
    )

    response = ChatResponse(
        reply=result.reply,
        remaining=decision.remaining,
        citations=state.source.find_citations(result.reply),
    )
    return JSONResponse(status_code=200, content=response.model_dump())


def create_app(state: Optional[GatewayState] = None) -> FastAPI:
    """Create the FastAPI app, optionally with a pre-built state."""

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        """Load config, document and manifest, and set up logging on startup."""
        current = get_state(application)
        setup_logging(current.config.log_file)
        yield

    application = FastAPI(
        title="Agreement Gateway", version="0.1.0", lifespan=lifespan
    )
    application.state.gateway = state
    application.include_router(router)
    return application


app = create_app()
