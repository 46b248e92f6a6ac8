"""Cancellation and deadline context shared by synthesis calls.

Responsibilities:
- Carry a cancel signal and an optional monotonic deadline through provider calls.
- Provide interruptible waits for retry backoff.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from time import monotonic
from typing import Callable

from .errors import OperationCancelled


@dataclass(slots=True)
class RunContext:
    """Cooperative cancellation token with an optional deadline.

    Attributes:
        deadline: Monotonic timestamp after which work must stop, or `None`.
        clock: Monotonic clock used for deadline checks.
    """

    deadline: float | None = None
    clock: Callable[[], float] = monotonic
    _cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(
        cls,
        timeout_seconds: float,
        clock: Callable[[], float] = monotonic,
    ) -> RunContext:
        """Create a context whose deadline is `timeout_seconds` from now."""

        return cls(deadline=clock() + timeout_seconds, clock=clock)

    def cancel(self) -> None:
        """Signal cancellation to every holder of this context."""

        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """Return whether `cancel` has been called."""

        return self._cancel_event.is_set()

    def remaining_seconds(self) -> float | None:
        """Return seconds left before the deadline, or `None` without one."""

        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def expired(self) -> bool:
        """Return whether the context is cancelled or past its deadline."""

        if self.cancelled:
            return True
        remaining = self.remaining_seconds()
        return remaining is not None and remaining <= 0.0

    def raise_if_cancelled(self) -> None:
        """Raise `OperationCancelled` when the context can no longer run work."""

        if self.cancelled:
            raise OperationCancelled("Operation was cancelled.")
        remaining = self.remaining_seconds()
        if remaining is not None and remaining <= 0.0:
            raise OperationCancelled("Operation deadline exceeded.")

    def wait(self, seconds: float) -> None:
        """Wait up to `seconds`, returning early with an error on cancel or deadline."""

        self.raise_if_cancelled()
        remaining = self.remaining_seconds()
        if remaining is not None and remaining < seconds:
            self._cancel_event.wait(timeout=remaining)
            self.raise_if_cancelled()
            raise OperationCancelled("Operation deadline exceeded.")
        if self._cancel_event.wait(timeout=max(0.0, seconds)):
            raise OperationCancelled("Operation was cancelled.")
