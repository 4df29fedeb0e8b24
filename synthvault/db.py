"""
LevelDB store backing the engine.

Only atomic multi-key writes go through ``write_batch``; single-key helpers
exist for bootstrap data such as the administrator record.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import plyvel

logger = logging.getLogger(__name__)

DEFAULT_WRITE_BUFFER = 64 * 1024 * 1024


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = DEFAULT_WRITE_BUFFER,
                 max_open_files: int = 1000,
                 compression: Optional[str] = 'snappy'):
        """
        Args:
            db_path: LevelDB directory
            create_if_missing: False to require an existing store
            write_buffer_size: memtable size in bytes
            max_open_files: LevelDB file handle cap
            compression: 'snappy' or None
        """
        self.path = db_path
        self._closed = True
        with self._logged(f"open {db_path}"):
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
                compression=compression,
            )
        self._closed = False
        logger.info(f"Opened store at {db_path}")

    @classmethod
    def from_config(cls, config) -> 'DB':
        """Open the store described by a DatabaseConfig."""
        return cls(
            config.path,
            write_buffer_size=config.write_buffer_size,
            max_open_files=config.max_open_files,
            compression=config.compression,
        )

    @staticmethod
    @contextmanager
    def _logged(action: str) -> Iterator[None]:
        try:
            yield
        except plyvel.Error as e:
            logger.error(f"Store failed to {action}: {e}")
            raise

    def _handle(self):
        if self._closed:
            raise RuntimeError(f"Store at {self.path} is closed")
        return self._db

    def get(self, key: bytes) -> Optional[bytes]:
        with self._logged(f"read {key.hex()[:16]}"):
            return self._handle().get(key)

    def put(self, key: bytes, value: bytes):
        with self._logged(f"write {key.hex()[:16]}"):
            self._handle().put(key, value)

    def delete(self, key: bytes):
        with self._logged(f"delete {key.hex()[:16]}"):
            self._handle().delete(key)

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    @contextmanager
    def write_batch(self):
        """
        Atomic group of writes. The batch is applied when the block exits
        cleanly and dropped if it raises.

            with db.write_batch() as batch:
                batch.put(b'VAULT:...', record)
                batch.delete(b'VAULT:...')
        """
        batch = self._handle().write_batch(transaction=True)
        try:
            yield batch
        except Exception:
            batch.clear()
            logger.debug("Dropped write batch after an error")
            raise
        with self._logged("apply write batch"):
            batch.write()

    def get_prefix(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        """Key-ordered (key, value) pairs under ``prefix``."""
        with self._logged(f"scan {prefix!r}"):
            return list(self._handle().iterator(prefix=prefix))

    def close(self):
        if self._closed:
            return
        with self._logged(f"close {self.path}"):
            self._db.close()
        self._closed = True
        logger.info(f"Closed store at {self.path}")

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
