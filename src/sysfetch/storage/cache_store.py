"""Per-host cache of slow-changing facts."""

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from sysfetch.config.models import CacheConfig
from sysfetch.facts.errors import CacheCorrupt, CacheMiss
from sysfetch.facts.models import Fact, FactKind, FactStatus
from sysfetch.hardware.fingerprint import detect_hostname

logger = logging.getLogger(__name__)


def default_cache_path(hostname: Optional[str] = None) -> Path:
    """``$XDG_CACHE_HOME/sysfetch/<hostname>.json``."""
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    host = (hostname or detect_hostname()).replace(os.sep, "_")
    return Path(base) / "sysfetch" / f"{host}.json"


@dataclass
class CacheEntry:
    """Fresh cached facts for one host fingerprint.

    ``facts`` maps each kind to ``(fact, saved_at)``. ``partials`` holds
    sub-results such as per-package-manager counts, keyed ``kind/name``.
    """

    fingerprint: str
    timestamp: float
    facts: Dict[FactKind, Tuple[Fact, float]] = field(default_factory=dict)
    partials: Dict[str, Tuple[Any, float]] = field(default_factory=dict)

    def fact(self, kind: FactKind) -> Optional[Fact]:
        item = self.facts.get(kind)
        return item[0] if item else None

    def partials_for(self, kind: FactKind) -> Dict[str, Any]:
        prefix = f"{kind.value}/"
        return {
            key[len(prefix):]: value
            for key, (value, _) in self.partials.items()
            if key.startswith(prefix)
        }

    @property
    def empty(self) -> bool:
        return not self.facts and not self.partials


class CacheStore:
    """JSON-file cache with per-kind TTLs.

    A mismatched fingerprint, an expired item, or a file that cannot be
    decoded are all treated as a miss. Writes go through a temp file and a
    rename; a failed write is logged and otherwise ignored.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        path: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CacheConfig()
        self.path = path or self.config.path or default_cache_path()
        self._clock = clock

    def _ttl(self, kind: FactKind) -> float:
        return self.config.ttl_s.get(kind, 0.0)

    def _fresh(self, kind: FactKind, saved_at: float, now: float) -> bool:
        ttl = self._ttl(kind)
        return ttl > 0 and 0 <= now - saved_at <= ttl

    def _read(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            raise CacheMiss(f"no cache file at {self.path}") from None
        except OSError as e:
            raise CacheMiss(f"cannot read {self.path}: {e}") from e
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise CacheCorrupt(f"undecodable cache file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise CacheCorrupt(f"unexpected cache layout in {self.path}")
        return data

    def _decode(self, data: Dict[str, Any], fingerprint: str, now: float) -> CacheEntry:
        if data.get("fingerprint") != fingerprint:
            raise CacheMiss("fingerprint mismatch")

        entry = CacheEntry(fingerprint=fingerprint, timestamp=float(data.get("timestamp", 0.0)))
        try:
            for item in data.get("facts", []):
                fact = Fact.from_dict(item["fact"])
                saved_at = float(item["saved_at"])
                if self._fresh(fact.kind, saved_at, now):
                    entry.facts[fact.kind] = (fact, saved_at)
            for key, item in data.get("partials", {}).items():
                kind = FactKind(key.split("/", 1)[0])
                saved_at = float(item["saved_at"])
                if self._fresh(kind, saved_at, now):
                    entry.partials[key] = (item["value"], saved_at)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheCorrupt(f"malformed cache item: {e}") from e
        return entry

    def load(self, fingerprint: str) -> Optional[CacheEntry]:
        """Return the fresh part of the cache for ``fingerprint``, or None."""
        if not self.config.enabled:
            return None
        try:
            entry = self._decode(self._read(), fingerprint, self._clock())
        except CacheMiss as e:
            logger.debug(f"Cache miss: {e}")
            return None
        if entry.empty:
            logger.debug("Cache miss: every cached item expired")
            return None
        return entry

    def save(
        self,
        fingerprint: str,
        facts: Iterable[Fact],
        partials: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Persist cache-eligible facts and partials for ``fingerprint``.

        Facts that came from the cache keep their original timestamp, so
        reuse never extends a TTL. Returns False if nothing was written.
        """
        if not self.config.enabled:
            return False

        now = self._clock()
        try:
            previous = self._decode(self._read(), fingerprint, now)
        except CacheMiss:
            previous = CacheEntry(fingerprint=fingerprint, timestamp=now)

        merged_facts = dict(previous.facts)
        for fact in facts:
            if fact.cached or fact.status is not FactStatus.OK:
                continue
            if self._ttl(fact.kind) <= 0:
                continue
            merged_facts[fact.kind] = (fact, now)

        merged_partials = dict(previous.partials)
        for key, value in (partials or {}).items():
            kind = FactKind(key.split("/", 1)[0])
            if self._ttl(kind) > 0:
                merged_partials[key] = (value, now)

        payload = {
            "fingerprint": fingerprint,
            "timestamp": now,
            "facts": [
                {"fact": fact.to_dict(), "saved_at": saved_at}
                for fact, saved_at in merged_facts.values()
            ],
            "partials": {
                key: {"value": value, "saved_at": saved_at}
                for key, (value, saved_at) in merged_partials.items()
            },
        }
        return self._write(payload)

    def _write(self, payload: Dict[str, Any]) -> bool:
        tmp_path: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with open(fd, "w") as f:
                json.dump(payload, f, indent=2)
            Path(tmp_path).replace(self.path)
            return True
        except Exception as e:
            logger.warning(f"Failed to write cache {self.path}: {e}")
            if tmp_path:
                Path(tmp_path).unlink(missing_ok=True)
            return False

    def clear(self) -> bool:
        """Delete the cache file. Returns True if one existed."""
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False
