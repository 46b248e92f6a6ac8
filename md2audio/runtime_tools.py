"""Runtime executable resolution helpers for local synthesizer commands.

Responsibilities:
- Resolve external executable paths with bundled-first precedence.
- Report whether a command is available before a provider commits to it.
"""

from __future__ import annotations

from pathlib import Path
import shutil
import sys


def resolve_executable(command_name: str) -> str:
    """Resolve an executable with bundled-first precedence, then PATH.

    Resolution order:
    1. Bundled app directories (`./bin/<tool>` then `./<tool>` from app root).
    2. System `PATH`.
    3. Raw command name (allowing subprocess to raise a native missing-binary error).
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    for candidate in _bundled_candidates(normalized):
        if candidate.is_file():
            return str(candidate)

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized


def is_executable_available(command_name: str) -> bool:
    """Return whether a command resolves to a bundled file or a PATH entry."""

    normalized = command_name.strip()
    if not normalized:
        return False
    if any(candidate.is_file() for candidate in _bundled_candidates(normalized)):
        return True
    return shutil.which(normalized) is not None


def _bundled_candidates(command_name: str) -> list[Path]:
    """Return bundled candidate paths for one executable name."""

    app_root = _app_root()
    return [app_root / "bin" / command_name, app_root / command_name]


def _app_root() -> Path:
    """Resolve runtime application root for frozen and non-frozen execution."""

    frozen = bool(getattr(sys, "frozen", False))
    if frozen:
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]
