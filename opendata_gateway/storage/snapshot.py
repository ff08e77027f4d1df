"""
Cache snapshots.

Saves live cache entries to a JSON file and loads them back, so a process
can start warm instead of re-fetching every endpoint.
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List

from opendata_gateway.models.records import RECORD_TYPES
from opendata_gateway.storage.cache import TieredCache
from opendata_gateway.utils.logging import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


class CacheSnapshot:
    """Reads and writes a JSON snapshot of a TieredCache."""

    def __init__(self, path: Path, wall_clock: Callable[[], float] = time.time):
        """
        Initialize snapshot file.

        Args:
            path: JSON file to write to and read from
            wall_clock: Wall-clock time source, used to age entries across restarts
        """
        self.path = Path(path)
        self._wall_clock = wall_clock

    def save(self, cache: TieredCache) -> int:
        """
        Write every live cache entry to the snapshot file.

        Returns:
            Number of entries written
        """
        entries = []
        for key, value, remaining in cache.items():
            records = list(value)
            entries.append({
                "key": key,
                "record_type": type(records[0]).__name__ if records else "",
                "ttl": remaining,
                "records": [r.to_dict() for r in records],
            })

        output = {
            "version": SNAPSHOT_VERSION,
            "saved_at": self._wall_clock(),
            "saved_at_iso": datetime.now().isoformat(),
            "total_entries": len(entries),
            "entries": entries,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write_json(self.path, output)
        logger.info(f"Saved {len(entries)} cache entries to {self.path}")
        return len(entries)

    def load(self, cache: TieredCache) -> int:
        """
        Load snapshot entries that have not expired yet into the cache.

        A missing, unreadable or malformed file loads nothing; malformed
        entries are skipped one by one.

        Returns:
            Number of entries loaded
        """
        if not self.path.exists():
            return 0

        try:
            data = self._read_json(self.path)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cache snapshot: {e}")
            return 0

        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache snapshot that is not a JSON object: {self.path}")
            return 0

        if data.get("version") != SNAPSHOT_VERSION:
            logger.warning(f"Ignoring cache snapshot with version {data.get('version')}")
            return 0

        entries = data.get("entries", [])
        try:
            age = max(0.0, self._wall_clock() - float(data.get("saved_at", 0)))
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring cache snapshot with bad saved_at: {e}")
            return 0
        if not isinstance(entries, list):
            logger.warning(f"Ignoring cache snapshot without an entry list: {self.path}")
            return 0

        loaded = 0
        for entry in entries:
            try:
                remaining = float(entry["ttl"]) - age
                if remaining <= 0:
                    continue
                key = entry["key"]
                if not isinstance(key, str):
                    raise TypeError(f"cache key must be a string, got {type(key).__name__}")
                records = self._rehydrate(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed snapshot entry: {e!r}")
                continue
            cache.set(key, tuple(records), remaining)
            loaded += 1

        logger.info(f"Loaded {loaded} cache entries from {self.path}")
        return loaded

    def _rehydrate(self, entry: Dict[str, Any]) -> List[Any]:
        rows = entry["records"]
        if not rows:
            return []
        record_type = RECORD_TYPES[entry["record_type"]]
        return [record_type.from_dict(row) for row in rows]

    def _write_json(self, path: Path, data: Dict) -> None:
        """Write data to JSON file."""
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def _read_json(self, path: Path) -> Dict:
        """Read data from JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
