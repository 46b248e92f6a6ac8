"""Bounded retry execution for remote TTS HTTP calls.

Responsibilities:
- Issue one `requests` call per attempt with the same arguments.
- Retry network failures and transient statuses with capped exponential backoff.
- Fail fast on non-transient statuses, keeping the status and body for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from loguru import logger
import requests

from ..errors import RemoteRequestError
from ..runtime_context import RunContext


RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503})
_MAX_ERROR_BODY_CHARS = 300


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget and backoff schedule.

    Attributes:
        max_attempts: Total attempts including the first one.
        initial_backoff_seconds: Wait before the second attempt.
        max_backoff_seconds: Upper bound for any single wait.
    """

    max_attempts: int = 3
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 10.0

    def backoff_for(self, attempt: int) -> float:
        """Return the wait after a failed 1-based `attempt`."""

        delay = self.initial_backoff_seconds * (2 ** (attempt - 1))
        return min(delay, self.max_backoff_seconds)


@dataclass(slots=True)
class RetryingRequestExecutor:
    """Execute HTTP requests with bounded retries and cancellable backoff.

    Attributes:
        provider_label: Provider name used in error messages.
        policy: Retry budget and backoff schedule.
        timeout_seconds: Per-attempt timeout, further bounded by the context deadline.
        sleeper: Optional wait override; defaults to the context's interruptible wait.
        attempt_count: Attempts made by the most recent `execute` call.
    """

    provider_label: str = "remote"
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    timeout_seconds: float = 60.0
    sleeper: Callable[[float], None] | None = None
    attempt_count: int = 0

    def execute(
        self,
        method: str,
        url: str,
        context: RunContext | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Run a request until it succeeds, fails terminally, or exhausts the budget."""

        run_context = context if context is not None else RunContext()
        max_attempts = max(1, self.policy.max_attempts)
        attempt = 0

        while True:
            attempt += 1
            run_context.raise_if_cancelled()
            self.attempt_count = attempt
            try:
                response = requests.request(
                    method,
                    url,
                    timeout=self._attempt_timeout(run_context),
                    **kwargs,
                )
            except requests.RequestException as exc:
                error = RemoteRequestError(
                    f"{self.provider_label} request transport error: {_short_message(str(exc))}"
                )
                cause: Exception | None = exc
            else:
                if 200 <= response.status_code < 300:
                    return response
                body = _decode_body(response)
                error = RemoteRequestError(
                    f"{self.provider_label} API error (HTTP {response.status_code}): "
                    f"{_short_message(body) or 'empty response body'}",
                    status_code=response.status_code,
                    body=body,
                )
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    raise error
                cause = None

            if attempt >= max_attempts:
                raise error from cause

            delay = self.policy.backoff_for(attempt)
            logger.debug(
                "{} request attempt {}/{} failed ({}); retrying in {:.1f}s",
                self.provider_label,
                attempt,
                max_attempts,
                error,
                delay,
            )
            self._wait(run_context, delay)

    def _attempt_timeout(self, context: RunContext) -> float:
        """Return the per-attempt timeout bounded by the remaining deadline."""

        remaining = context.remaining_seconds()
        if remaining is None:
            return self.timeout_seconds
        return max(0.001, min(self.timeout_seconds, remaining))

    def _wait(self, context: RunContext, delay: float) -> None:
        """Wait between attempts, honoring cancellation."""

        if self.sleeper is None:
            context.wait(delay)
            return
        context.raise_if_cancelled()
        self.sleeper(delay)


def _decode_body(response: requests.Response) -> str:
    """Decode a response body into a best-effort UTF-8 string."""

    try:
        return bytes(response.content).decode("utf-8", errors="replace").strip()
    except (TypeError, ValueError):
        return ""


def _short_message(text: str) -> str:
    """Normalize and cap user-facing provider message length."""

    compact = " ".join(text.split())
    if len(compact) <= _MAX_ERROR_BODY_CHARS:
        return compact
    return f"{compact[: _MAX_ERROR_BODY_CHARS - 3]}..."
