"""
Pending state for a single operation.

Writes are staged in memory and reach the database only through one
atomic write batch on commit. Reads see staged writes first.
"""
import logging
from typing import Optional

import msgpack

from synthvault.db import DB

logger = logging.getLogger(__name__)

_DELETED = object()


class StateBatch:
    def __init__(self, db: DB):
        self.db = db
        self._writes: dict[bytes, object] = {}

    def get(self, key: bytes) -> Optional[bytes]:
        if key in self._writes:
            value = self._writes[key]
            return None if value is _DELETED else value
        return self.db.get(key)

    def put(self, key: bytes, value: bytes):
        self._writes[key] = value

    def delete(self, key: bytes):
        self._writes[key] = _DELETED

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    def get_record(self, key: bytes) -> Optional[dict]:
        """Get a msgpack-encoded record."""
        raw = self.get(key)
        if raw is None:
            return None
        return msgpack.unpackb(raw, raw=False)

    def put_record(self, key: bytes, record: dict):
        """Store a record msgpack-encoded."""
        self.put(key, msgpack.packb(record, use_bin_type=True))

    def prefix_items(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        """All live key-value pairs under a prefix, staged writes included."""
        merged = dict(self.db.get_prefix(prefix))
        for key, value in self._writes.items():
            if not key.startswith(prefix):
                continue
            if value is _DELETED:
                merged.pop(key, None)
            else:
                merged[key] = value
        return sorted(merged.items())

    @property
    def pending(self) -> int:
        """Number of staged writes."""
        return len(self._writes)

    def commit(self):
        """Flush all staged writes in one atomic batch."""
        if not self._writes:
            return
        with self.db.write_batch() as batch:
            for key, value in self._writes.items():
                if value is _DELETED:
                    batch.delete(key)
                else:
                    batch.put(key, value)
        logger.debug(f"Committed {len(self._writes)} writes")
        self._writes.clear()

    def discard(self):
        self._writes.clear()
