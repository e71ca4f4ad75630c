from __future__ import annotations

import json
import logging
import tempfile
import time
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable

"""
On-disk JSON cache for provider responses.

Geocoding, place and directions calls are metered per request. Responses are
stored as one JSON envelope per (namespace, key) under `.cache/fultramaps/`
(SHA-256 file names), with the TTL checked on read. Expired envelopes are kept
so a route can still be served from a stale copy while the provider is down.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Envelope written to disk around each cached value."""

    created_at_unix: int
    ttl_seconds: int
    value: Any

    def is_fresh(self, now: int, ttl_seconds: int | None = None) -> bool:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        return now - self.created_at_unix <= ttl


class FileCache:
    """Filesystem cache keyed by (namespace, key); a disabled cache stores nothing."""

    def __init__(self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 86400):
        self._base_dir = Path(base_dir)
        self._enabled = enabled
        self._default_ttl_seconds = default_ttl_seconds

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _path(self, namespace: str, key: str) -> Path:
        digest = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{digest}.json"

    def _load(self, namespace: str, key: str) -> CacheEntry | None:
        if not self._enabled:
            return None
        path = self._path(namespace, key)
        if not path.is_file():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(int(raw["created_at_unix"]), int(raw["ttl_seconds"]), raw["value"])
        except (OSError, ValueError, KeyError, TypeError):
            logger.debug("Ignoring unreadable cache file %s", path)
            return None

    def get(self, namespace: str, key: str, ttl_seconds: int | None = None) -> Any | None:
        """Cached value if present and within TTL, else None."""
        entry = self._load(namespace, key)
        if entry is None or not entry.is_fresh(int(time.time()), ttl_seconds):
            return None
        return entry.value

    def get_stale(self, namespace: str, key: str) -> Any | None:
        """Cached value regardless of age, else None."""
        entry = self._load(namespace, key)
        return entry.value if entry else None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serializable value (written to a temp file, then renamed)."""
        if not self._enabled:
            return
        path = self._path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        envelope = {
            "created_at_unix": int(time.time()),
            "ttl_seconds": int(self._default_ttl_seconds if ttl_seconds is None else ttl_seconds),
            "value": value,
        }
        payload = json.dumps(envelope, ensure_ascii=False)
        # Unique temp name per writer; concurrent sets of one key each rename their own file.
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=path.stem + ".", suffix=".tmp", delete=False
        ) as f:
            f.write(payload)
        Path(f.name).replace(path)

    def get_or_set(
        self,
        namespace: str,
        key: str,
        builder: Callable[[], Any],
        ttl_seconds: int | None = None,
        *,
        stale_if_error: bool = False,
        stale_predicate: Callable[[Exception], bool] | None = None,
    ) -> Any:
        """Return the fresh cached value, or build, store, and return a new one.

        `None` results are not stored. With `stale_if_error`, a failing
        `builder()` falls back to an expired entry when one exists and
        `stale_predicate(exc)` accepts the error (any error if no predicate).
        """
        cached = self.get(namespace, key, ttl_seconds=ttl_seconds)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception as exc:
            if not stale_if_error or (stale_predicate is not None and not stale_predicate(exc)):
                raise
            stale = self.get_stale(namespace, key)
            if stale is None:
                raise
            logger.warning("Serving stale %s entry after upstream error: %s", namespace, exc)
            return stale
        if value is not None:
            self.set(namespace, key, value, ttl_seconds=ttl_seconds)
        return value
