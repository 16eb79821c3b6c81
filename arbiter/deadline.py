"""Per-request time budget shared by every outbound call of one request."""

import time
from typing import Optional


class Deadline:
    """Time budget of one inbound request."""

    def __init__(self, seconds: Optional[float] = None):
        self.expires_at = (time.monotonic() + seconds
                           if seconds is not None else None)

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def timeout(self, configured: Optional[float] = None) -> Optional[float]:
        """The tighter of a call's own timeout and what is left of the request."""
        remaining = self.remaining()
        if remaining is None:
            return configured
        if configured is None:
            return remaining
        return min(configured, remaining)
