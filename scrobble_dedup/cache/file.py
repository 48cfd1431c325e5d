from __future__ import annotations

import fcntl
import logging
import os
import threading
from pathlib import Path
from typing import IO

from ..errors import CacheError

log = logging.getLogger(__name__)

CACHE_FILE_NAME = "cache.db"
DEFAULT_FLUSH_INTERVAL = 30.0


class FileCache:
    """Cache backed by a ``key=value`` text file.

    The whole file is loaded on open (last occurrence of a key wins). Writes
    only touch the in-memory mapping; a background thread periodically
    compacts the mapping back to disk through a temp file and an atomic
    rename, and ``close`` compacts one final time.

    A sidecar ``.lock`` file is held exclusively while the cache is open so
    that only one process writes the file.
    """

    def __init__(
        self,
        cache_file: str | Path,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        enable_locking: bool = True,
    ):
        self.cache_file = Path(cache_file)
        self.flush_interval = flush_interval
        self.enable_locking = enable_locking
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self._compact_lock = threading.Lock()
        self._stop = threading.Event()
        self._lock_handle: IO[str] | None = None
        self._flusher: threading.Thread | None = None
        self._closed = False

        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            if enable_locking:
                self._acquire_writer_lock()
            self.cache_file.touch(exist_ok=True)
            self._load()
        except OSError as e:
            self._release_writer_lock()
            raise CacheError(f"cannot open cache file {self.cache_file}: {e}") from e
        except BaseException:
            self._release_writer_lock()
            raise

        if flush_interval > 0:
            self._flusher = threading.Thread(
                target=self._run_flusher,
                name="file-cache-compaction",
                daemon=True,
            )
            self._flusher.start()

    @property
    def lock_file(self) -> Path:
        return self.cache_file.with_name(self.cache_file.name + ".lock")

    def _acquire_writer_lock(self) -> None:
        handle = self.lock_file.open("a")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            handle.close()
            raise CacheError(f"cache file {self.cache_file} is in use by another process") from e
        self._lock_handle = handle

    def _release_writer_lock(self) -> None:
        if self._lock_handle is None:
            return
        try:
            fcntl.flock(self._lock_handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_handle.close()
            self._lock_handle = None

    def _load(self) -> None:
        data: dict[str, str] = {}
        with self.cache_file.open("rb") as f:
            for lineno, raw in enumerate(f, start=1):
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError:
                    log.warning("Skipping undecodable line %d in cache file %s", lineno, self.cache_file.name)
                    continue
                key, sep, value = line.rstrip("\r\n").partition("=")
                if sep and key:
                    data[key] = value
        self._data = data
        log.debug("Loaded cache from %s with %d entries", self.cache_file.name, len(data))

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        # Gone from disk at the next compaction
        with self._lock:
            self._data.pop(key, None)

    def size(self) -> int:
        """Return number of entries in cache."""
        with self._lock:
            return len(self._data)

    def compact(self) -> None:
        """Rewrite the file with only the current entries.

        The mapping lock is held just long enough to snapshot it, so
        foreground get/set calls are not blocked by the disk write.
        """
        with self._compact_lock:
            with self._lock:
                snapshot = dict(self._data)

            temp_file = self.cache_file.with_name(self.cache_file.name + ".tmp")
            try:
                with temp_file.open("w", encoding="utf-8") as f:
                    for key, value in snapshot.items():
                        f.write(f"{key}={value}\n")
                    f.flush()
                    os.fsync(f.fileno())
                temp_file.replace(self.cache_file)
            except OSError as e:
                raise CacheError(f"cannot write cache file {self.cache_file}: {e}") from e

            log.debug("Compacted cache %s to %d entries", self.cache_file.name, len(snapshot))

    def _run_flusher(self) -> None:
        while not self._stop.wait(self.flush_interval):
            try:
                self.compact()
            except CacheError as e:
                log.error("Periodic cache compaction failed: %s", e)

    def close(self) -> None:
        """Stop the compaction thread, compact once more and release the file."""
        if self._closed:
            return
        self._closed = True

        self._stop.set()
        if self._flusher is not None:
            self._flusher.join()

        try:
            self.compact()
        except CacheError as e:
            log.error("Failed to flush file cache: %s", e)
        finally:
            self._release_writer_lock()
