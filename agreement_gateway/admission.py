"""In-memory admission control for the agreement gateway.

Tracks per-client request counts in fixed windows and a process-wide
estimated spend total. Both reset lazily on the first access after their
window ends; there is no background timer.

State lives in process memory only. Each worker process owns an independent
copy, so caps are enforced per process, not across a cluster.
"""

import math
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

UNKNOWN_CLIENT = "unknown"

GLOBAL_CAP_MESSAGE = (
    "The service has reached its daily usage limit. Please try again tomorrow."
)


class DenialReason(str, Enum):
    """Why an admission check was declined."""

    GLOBAL_CAP_REACHED = "global_cap_reached"
    PER_CLIENT_LIMIT_REACHED = "per_client_limit_reached"


@dataclass(frozen=True)
class AdmissionConfig:
    """Quota parameters, fixed for the lifetime of a controller."""

    max_requests_per_window: int = 20
    window_seconds: float = 24 * 60 * 60
    daily_spend_cap: float = 50.0
    estimated_cost_per_query: float = 0.15
    eviction_grace_seconds: Optional[float] = None


@dataclass(frozen=True)
class Decision:
    """Result of an admission check."""

    allowed: bool
    remaining: int
    reason: Optional[str] = None
    denial: Optional[DenialReason] = None

    @classmethod
    def allow(cls, remaining: int) -> "Decision":
        return cls(allowed=True, remaining=remaining)

    @classmethod
    def deny(cls, denial: DenialReason, reason: str) -> "Decision":
        return cls(allowed=False, remaining=0, reason=reason, denial=denial)


@dataclass
class ClientWindow:
    """Request counter for a single client key."""

    key: str
    count: int
    window_end: float


@dataclass
class GlobalSpend:
    """Estimated spend accumulated across all clients."""

    total: float
    window_end: float


@dataclass
class AdmissionController:
    """Per-client and global quota governor.

    Every ``check`` is a debit: an allowed call consumes one request from
    the client's window. Call ``record_spend`` once per upstream call that
    completed successfully.
    """

    config: AdmissionConfig = field(default_factory=AdmissionConfig)
    clock: Callable[[], float] = time.time
    _windows: Dict[str, ClientWindow] = field(default_factory=dict, init=False)
    _spend: GlobalSpend = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        self._spend = GlobalSpend(
            total=0.0, window_end=self.clock() + self.config.window_seconds
        )

    def check(self, client_key: Optional[str]) -> Decision:
        """Decide whether ``client_key`` may make a request now.

        Args:
            client_key: Opaque requester identifier. Empty or None values
                share the ``"unknown"`` bucket.

        Returns:
            An allowed Decision with the remaining quota, or a denied one
            with a human-readable reason and ``remaining=0``.
        """
        key = client_key or UNKNOWN_CLIENT
        max_requests = self.config.max_requests_per_window

        with self._lock:
            now = self.clock()
            self._roll_over_spend(now)

            if self._spend.total >= self.config.daily_spend_cap:
                return Decision.deny(
                    DenialReason.GLOBAL_CAP_REACHED, GLOBAL_CAP_MESSAGE
                )

            window = self._windows.get(key)
            if window is None or now >= window.window_end:
                self._windows[key] = ClientWindow(
                    key=key,
                    count=1,
                    window_end=now + self.config.window_seconds,
                )
                return Decision.allow(max_requests - 1)

            if window.count >= max_requests:
                hours = math.ceil((window.window_end - now) / 3600)
                return Decision.deny(
                    DenialReason.PER_CLIENT_LIMIT_REACHED,
                    "You've reached the limit of {} questions. "
                    "This resets in {} hours.".format(max_requests, hours),
                )

            window.count += 1
            return Decision.allow(max_requests - window.count)

    def record_spend(self) -> None:
        """Add one query's estimated cost to the global total."""
        with self._lock:
            self._roll_over_spend(self.clock())
            self._spend.total += self.config.estimated_cost_per_query

    @property
    def spend_total(self) -> float:
        with self._lock:
            self._roll_over_spend(self.clock())
            return self._spend.total

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def window_for(self, client_key: Optional[str]) -> Optional[ClientWindow]:
        """Return the stored window for a key, expired or not."""
        return self._windows.get(client_key or UNKNOWN_CLIENT)

    def _roll_over_spend(self, now: float) -> None:
        """Reset the global total if its window has ended. Caller holds the lock."""
        if now < self._spend.window_end:
            return

        self._spend = GlobalSpend(
            total=0.0, window_end=now + self.config.window_seconds
        )

        grace = self.config.eviction_grace_seconds
        if grace is not None:
            stale = [
                key
                for key, window in self._windows.items()
                if now >= window.window_end + grace
            ]
            for key in stale:
                del self._windows[key]
