"""Request and response models for the agreement gateway."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single message in a chat conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """Incoming chat request from the browser client."""

    messages: List[ChatMessage] = Field(
        ..., min_length=1, description="Conversation so far, oldest first"
    )


class Citation(BaseModel):
    """A clause or schedule reference found in an answer."""

    text: str
    page: int
    url: str


class ChatResponse(BaseModel):
    """Successful chat response envelope."""

    reply: str
    remaining: int
    citations: List[Citation] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Structured error detail."""

    type: str
    message: str


class ErrorResponse(BaseModel):
    """Error response envelope."""

    error: ErrorDetail
    remaining: Optional[int] = None
