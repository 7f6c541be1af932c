"""
Contact Cache
Time-bounded store of sponsor contact info keyed by bio path.

The backing file is a flat JSON object. It is read once by load(), where
stale entries are dropped, and rewritten wholesale by save() at the end of
a run. There is no cross-process locking; one writer per run is assumed.
"""

import os
import json
import math
import stat
import time
import logging
import tempfile
from datetime import timedelta
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(days=7)
TIMESTAMP_KEY = '_ts'


def now_ms() -> int:
    return int(time.time() * 1000)


def _target_mode(path: str) -> int:
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_json_atomic(path: str, data: Any) -> None:
    """
    Write JSON to a temp file next to path, then move it into place.

    The file keeps the mode of the file it replaces. A new file gets the
    default mode for the current umask, not mkstemp's owner-only 0600.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix='.json')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class ContactCache:
    """
    In-memory contact cache with explicit load/get/put/save.

    Timestamps are epoch milliseconds stored under '_ts' in each entry.
    """

    def __init__(self, path: Optional[str], ttl: timedelta = CACHE_TTL, now=None):
        """
        Args:
            path: Cache file path (None keeps the cache in memory only)
            ttl: Maximum entry age
            now: Optional callable returning the current epoch milliseconds
        """
        self.path = path
        self.ttl = ttl
        self._now = now or now_ms
        self._entries: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl.total_seconds() * 1000)

    def load(self) -> int:
        """
        Load fresh entries from the cache file.

        A missing file yields an empty cache. An unreadable file is discarded
        with a warning.

        Returns:
            Number of entries loaded
        """
        self._entries = {}
        if not self.path or not os.path.exists(self.path):
            return 0

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                cached = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable contact cache {self.path}: {e}")
            return 0

        if not isinstance(cached, dict):
            logger.warning(f"Ignoring contact cache {self.path}: expected a JSON object")
            return 0

        now = self._now()
        dropped = 0
        for key, entry in cached.items():
            timestamp = entry.get(TIMESTAMP_KEY) if isinstance(entry, dict) else None
            if (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))
                    or not math.isfinite(timestamp)):
                dropped += 1
                continue
            if now - timestamp >= self.ttl_ms:
                dropped += 1
                continue
            self._entries[key] = entry

        logger.info(f"Loaded {len(self._entries)} cached contacts ({dropped} stale or invalid dropped)")
        return len(self._entries)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Cached contact fields for key (without the timestamp), or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return {k: v for k, v in entry.items() if k != TIMESTAMP_KEY}

    def put(self, key: str, entry: Dict[str, Any]) -> None:
        """Store contact fields for key, stamped with the current time."""
        stored = dict(entry)
        stored[TIMESTAMP_KEY] = self._now()
        self._entries[key] = stored

    def save(self) -> None:
        """Rewrite the cache file from the in-memory entries."""
        if not self.path:
            return
        write_json_atomic(self.path, self._entries)
        logger.info(f"Saved {len(self._entries)} cached contacts to {self.path}")
