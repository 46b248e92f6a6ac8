"""SQLite-backed voice metadata cache.

Responsibilities:
- Persist provider voice lists with a per-row fetch timestamp.
- Serve fresh rows within a TTL and replace a provider's rows atomically.
- Report cache age and export cached voices to JSON.

Key types:
- `VoiceCache`: thread-safe cache handle over one SQLite file.
- `CacheInfo`: aggregate row count and timestamps for one provider.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import math
from pathlib import Path
import sqlite3
import threading
import time
from typing import Callable, Iterable

from ..errors import CacheError
from ..models.datatypes import Voice


DEFAULT_CACHE_DIR_NAME = ".md2audio"
DEFAULT_CACHE_FILE_NAME = "voice_cache.db"
DEFAULT_TTL_SECONDS = 30 * 24 * 60 * 60

_SCHEMA = """
CREATE TABLE IF NOT EXISTS voices (
    provider TEXT NOT NULL,
    voice_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    language TEXT,
    gender TEXT,
    cached_at INTEGER NOT NULL,
    PRIMARY KEY (provider, voice_id)
);
CREATE INDEX IF NOT EXISTS idx_provider ON voices(provider);
CREATE INDEX IF NOT EXISTS idx_cached_at ON voices(cached_at);
"""


def default_cache_path() -> Path:
    """Return `~/.md2audio/voice_cache.db`."""

    return Path.home() / DEFAULT_CACHE_DIR_NAME / DEFAULT_CACHE_FILE_NAME


@dataclass(frozen=True, slots=True)
class CacheInfo:
    """Aggregate cache state for one provider.

    Attributes:
        provider: Provider identifier.
        count: Number of cached rows, fresh or stale.
        oldest_entry: Oldest `cached_at` epoch seconds, or `None` when empty.
        newest_entry: Newest `cached_at` epoch seconds, or `None` when empty.
    """

    provider: str
    count: int
    oldest_entry: int | None = None
    newest_entry: int | None = None

    def is_expired(self, ttl_seconds: float, now: float | None = None) -> bool:
        """Return whether the partition is empty or older than `ttl_seconds`."""

        if self.count == 0 or self.newest_entry is None:
            return True
        current = time.time() if now is None else now
        return current - self.newest_entry > ttl_seconds

    def age_seconds(self, now: float | None = None) -> float | None:
        """Return seconds since the newest entry was cached."""

        if self.newest_entry is None:
            return None
        current = time.time() if now is None else now
        return max(0.0, current - self.newest_entry)


class VoiceCache:
    """Voice metadata cache over a single SQLite file, safe to share across threads."""

    def __init__(
        self,
        path: Path | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Open or create the cache database and ensure the schema exists."""

        self.path = path if path is not None else default_cache_path()
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                timeout=30.0,
            )
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA synchronous=NORMAL")
            self._connection.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise CacheError(f"Failed to open voice cache `{self.path}`: {exc}") from exc

    def __enter__(self) -> VoiceCache:
        """Return the open cache for `with` blocks."""

        return self

    def __exit__(self, *_exc_info: object) -> None:
        """Close the cache when leaving a `with` block."""

        self.close()

    def close(self) -> None:
        """Close the underlying connection."""

        with self._lock:
            self._connection.close()

    def get(self, provider: str) -> list[Voice]:
        """Return fresh voices for `provider` ordered by name; empty means a miss.

        Rows expire once their age exceeds `ttl_seconds`, matching `CacheInfo.is_expired`.
        """

        cutoff = math.ceil(self._clock() - self.ttl_seconds)
        rows = self._fetch_all(
            """
            SELECT voice_id, name, description, language, gender
            FROM voices
            WHERE provider = ? AND cached_at >= ?
            ORDER BY name
            """,
            (provider, cutoff),
        )
        return [
            Voice(
                id=voice_id,
                name=name,
                description=description or "",
                language=language or "",
                gender=gender or "",
            )
            for voice_id, name, description, language, gender in rows
        ]

    def set(self, provider: str, voices: Iterable[Voice]) -> None:
        """Replace all rows for `provider` in one transaction with one timestamp."""

        cached_at = int(self._clock())
        rows = [
            (
                provider,
                voice.id,
                voice.name,
                voice.description,
                voice.language,
                voice.gender,
                cached_at,
            )
            for voice in voices
        ]
        with self._lock:
            try:
                with self._connection:
                    self._connection.execute("DELETE FROM voices WHERE provider = ?", (provider,))
                    self._connection.executemany(
                        """
                        INSERT INTO voices
                            (provider, voice_id, name, description, language, gender, cached_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        rows,
                    )
            except sqlite3.Error as exc:
                raise CacheError(f"Failed to cache voices for `{provider}`: {exc}") from exc

    def clear(self, provider: str) -> None:
        """Delete all rows for `provider`."""

        self._execute_write("DELETE FROM voices WHERE provider = ?", (provider,))

    def clear_all(self) -> None:
        """Delete every cached row."""

        self._execute_write("DELETE FROM voices", ())

    def get_cache_info(self, provider: str) -> CacheInfo:
        """Return row count and oldest/newest timestamps for `provider`."""

        rows = self._fetch_all(
            "SELECT COUNT(*), MIN(cached_at), MAX(cached_at) FROM voices WHERE provider = ?",
            (provider,),
        )
        count, oldest, newest = rows[0]
        return CacheInfo(
            provider=provider,
            count=int(count),
            oldest_entry=int(oldest) if oldest is not None else None,
            newest_entry=int(newest) if newest is not None else None,
        )

    def export_to_json(self, provider: str, output_path: Path) -> int:
        """Write fresh voices for `provider` as a pretty-printed JSON array.

        Returns:
            Number of exported voices.

        Raises:
            CacheError: If no fresh voices are cached; no file is written.
        """

        voices = self.get(provider)
        if not voices:
            raise CacheError(f"no cached voices found for provider: {provider}")
        payload = json.dumps([voice.to_dict() for voice in voices], indent=2, ensure_ascii=False)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(payload + "\n", encoding="utf-8")
        except OSError as exc:
            raise CacheError(f"Failed to write voice export `{output_path}`: {exc}") from exc
        return len(voices)

    def _fetch_all(self, query: str, params: tuple[object, ...]) -> list[tuple]:
        """Run a read query under the connection lock."""

        with self._lock:
            try:
                return self._connection.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise CacheError(f"Voice cache query failed: {exc}") from exc

    def _execute_write(self, statement: str, params: tuple[object, ...]) -> None:
        """Run one write statement in its own transaction."""

        with self._lock:
            try:
                with self._connection:
                    self._connection.execute(statement, params)
            except sqlite3.Error as exc:
                raise CacheError(f"Voice cache update failed: {exc}") from exc
