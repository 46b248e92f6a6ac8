"""Domain exceptions for synthesis, caching, and CLI diagnostics."""

from __future__ import annotations


class CommandStageError(RuntimeError):
    """Raised when a specific command stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped command error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ProviderSetupError(RuntimeError):
    """Raised when a TTS provider cannot be constructed in this environment."""

    def __init__(self, provider: str, detail: str) -> None:
        """Initialize setup error metadata for the failing provider."""

        super().__init__(f"{provider}: {detail}")
        self.provider = provider
        self.detail = detail


class SynthesisInputError(ValueError):
    """Raised when a synthesis request cannot be served as given."""


class SynthesisError(RuntimeError):
    """Raised when a local command or conversion step fails during synthesis."""


class RemoteRequestError(RuntimeError):
    """Raised when a remote TTS request fails terminally or exhausts its retries."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        """Initialize remote failure metadata for diagnostics."""

        super().__init__(message)
        self.status_code = status_code
        self.body = body


class OperationCancelled(RuntimeError):
    """Raised when a run context is cancelled or its deadline has passed."""


class CacheError(RuntimeError):
    """Raised when the local voice cache cannot serve a request."""
