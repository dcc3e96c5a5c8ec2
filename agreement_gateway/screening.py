"""Bot-traffic heuristics applied before a request is validated.

These checks are crude filters on the raw JSON body. They are unrelated to
admission control and never touch quota state.
"""

from typing import Any, Dict

HONEYPOT_FIELDS = ("website", "email")

HONEYPOT_REPLY = (
    "Thanks for your question! The answer can be found in the agreement."
)


class SuspiciousRequest(Exception):
    """Raised when a request looks automated."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


def is_honeypot(body: Dict[str, Any]) -> bool:
    """Return True if any hidden form field was filled in.

    The browser form never populates these fields, so a value means the
    request came from something filling every input it found.
    """
    return any(body.get(name) for name in HONEYPOT_FIELDS)


def check_first_message(body: Dict[str, Any], max_chars: int) -> None:
    """Reject an opening message that is too long to be typed by hand.

    Only applies when the conversation holds exactly one message.

    Raises:
        SuspiciousRequest: If the lone message exceeds ``max_chars``.
    """
    messages = body.get("messages")
    if not isinstance(messages, list) or len(messages) != 1:
        return

    last = messages[-1]
    content = last.get("content") if isinstance(last, dict) else None
    if isinstance(content, str) and len(content) > max_chars:
        raise SuspiciousRequest("Please try a shorter question.")
