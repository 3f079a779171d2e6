"""L2: size-bounded persistent LRU store for encoded image bytes.

The storage engine is :mod:`diskcache`; this module adapts it to a
snapshot/editor contract.  Readers obtain a :class:`Snapshot` holding one
stream per value index, writers obtain an :class:`Editor` that buffers every
value and publishes them in a single transaction on :meth:`Editor.commit`.
A partially written editor is never visible to readers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO

import diskcache

from ...config import (
    DISK_CACHE_META_NAME,
    DISK_CACHE_VALUE_COUNT,
    DOWNLOAD_CHUNK_SIZE,
)
from ...errors import DiskIOFailure, EditorStateError

LOGGER = logging.getLogger(__name__)

# Keep small downloads in memory; spill larger ones to a temporary file.
_SPOOL_MAX_SIZE = 256 * 1024

_STORE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class Snapshot:
    """Read-side handle over the values of one committed entry."""

    def __init__(self, key: str, streams: list[BinaryIO]):
        self._key = key
        self._streams = streams

    @property
    def key(self) -> str:
        return self._key

    def get_input_stream(self, index: int) -> BinaryIO:
        return self._streams[index]

    def get_bytes(self, index: int = 0) -> bytes:
        """Read the remainder of value *index* into memory."""
        try:
            return self._streams[index].read()
        except OSError as exc:
            raise DiskIOFailure(f"Failed to read {self._key}[{index}]: {exc}") from exc

    def close(self) -> None:
        for stream in self._streams:
            try:
                stream.close()
            except OSError:
                LOGGER.debug("Failed to close snapshot stream for %s", self._key)

    def __enter__(self) -> "Snapshot":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Editor:
    """Write-side handle for one key.

    Exactly one of :meth:`commit` or :meth:`abort` must be called.  Streams
    returned by :meth:`new_output_stream` are owned by the editor; callers
    write to them but must not close them.
    """

    def __init__(self, cache: "DiskLruCache", key: str, value_count: int):
        self._cache = cache
        self._key = key
        self._streams: list[tempfile.SpooledTemporaryFile | None] = [None] * value_count
        self._done = False

    @property
    def key(self) -> str:
        return self._key

    def new_output_stream(self, index: int) -> BinaryIO:
        """Return a fresh stream for value *index*, discarding earlier writes."""
        self._check_open()
        previous = self._streams[index]
        if previous is not None:
            previous.close()
        stream = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_SIZE)
        self._streams[index] = stream
        return stream  # type: ignore[return-value]

    def get_output_stream(self, index: int) -> BinaryIO:
        """Return the stream for value *index*, creating it on first use."""
        self._check_open()
        stream = self._streams[index]
        if stream is None:
            return self.new_output_stream(index)
        return stream  # type: ignore[return-value]

    def commit(self) -> None:
        """Publish every value atomically.

        Raises :class:`EditorStateError` when a value index was never written
        (the edit is aborted first) and :class:`DiskIOFailure` when the store
        rejects the write.
        """
        self._check_open()
        missing = [index for index, stream in enumerate(self._streams) if stream is None]
        if missing:
            self.abort()
            raise EditorStateError(
                f"Edit of {self._key} did not create a value for index {missing[0]}"
            )
        try:
            self._cache._publish(self._key, self._streams)  # noqa: SLF001
        finally:
            self._finish()

    def abort(self) -> None:
        """Discard the buffered values.  Aborting a finished editor is a no-op."""
        if self._done:
            return
        self._finish()

    def _finish(self) -> None:
        self._done = True
        for stream in self._streams:
            if stream is not None:
                stream.close()
        self._streams = [None] * len(self._streams)
        self._cache._release(self._key)  # noqa: SLF001

    def _check_open(self) -> None:
        if self._done:
            raise EditorStateError(f"Editor for {self._key} is already closed")


class DiskLruCache:
    """Size-bounded LRU blob store keyed by cache keys.

    Use :meth:`open` rather than the constructor.  The store records the
    application version and value count it was created with; reopening it
    with different values discards every entry.
    """

    def __init__(self, directory: Path, store: diskcache.Cache, value_count: int):
        self._directory = directory
        self._store = store
        self._value_count = value_count
        self._editing: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        directory: Path,
        app_version: int | str,
        value_count: int = DISK_CACHE_VALUE_COUNT,
        max_size: int = 10 * 1024 * 1024,
    ) -> "DiskLruCache":
        """Open (or create) the store in *directory*.

        Raises :class:`DiskIOFailure` when the directory or the underlying
        database cannot be opened.
        """
        if value_count < 1:
            raise ValueError("value_count must be at least 1")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            store = diskcache.Cache(
                str(directory),
                size_limit=max_size,
                eviction_policy="least-recently-used",
                disk_min_file_size=DOWNLOAD_CHUNK_SIZE,
            )
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Cannot open disk cache at {directory}: {exc}") from exc

        cache = cls(directory, store, value_count)
        cache._check_version(str(app_version))
        LOGGER.info("Disk cache opened at %s (max %d bytes)", directory, max_size)
        return cache

    # ------------------------------------------------------------------
    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def max_size(self) -> int:
        return int(self._store.size_limit)

    @property
    def value_count(self) -> int:
        return self._value_count

    def get(self, key: str) -> Snapshot | None:
        """Return a snapshot of *key*, or ``None`` when it is not stored."""
        streams: list[BinaryIO] = []
        try:
            for index in range(self._value_count):
                stream = self._store.get(self._value_key(key, index), read=True, retry=True)
                if stream is None:
                    for opened in streams:
                        opened.close()
                    return None
                streams.append(stream)
        except _STORE_ERRORS as exc:
            for opened in streams:
                opened.close()
            raise DiskIOFailure(f"Failed to read {key}: {exc}") from exc
        return Snapshot(key, streams)

    def edit(self, key: str) -> Editor | None:
        """Return an editor for *key*, or ``None`` if another edit is in progress."""
        with self._lock:
            if key in self._editing:
                return None
            self._editing.add(key)
        return Editor(self, key, self._value_count)

    def remove(self, key: str) -> bool:
        """Delete *key*; return ``True`` when something was removed."""
        with self._lock:
            if key in self._editing:
                return False
        try:
            with self._store.transact(retry=True):
                removed = [
                    self._store.delete(self._value_key(key, index), retry=True)
                    for index in range(self._value_count)
                ]
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Failed to remove {key}: {exc}") from exc
        return any(removed)

    def flush(self) -> None:
        """Enforce the size bound now.  Failures are logged, never raised."""
        try:
            self._store.cull(retry=True)
        except _STORE_ERRORS as exc:
            LOGGER.warning("Disk cache flush failed: %s", exc)

    def clear(self) -> int:
        try:
            return int(self._store.clear(retry=True))
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Failed to clear disk cache: {exc}") from exc

    def size(self) -> int:
        """Bytes currently used on disk, including the index database."""
        try:
            return int(self._store.volume())
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Failed to measure disk cache: {exc}") from exc

    def __len__(self) -> int:
        return len(self._store) // self._value_count

    def close(self) -> None:
        self._store.close()

    def __enter__(self) -> "DiskLruCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    def _publish(self, key: str, streams: list) -> None:
        try:
            with self._store.transact(retry=True):
                for index, stream in enumerate(streams):
                    stream.seek(0)
                    self._store.set(self._value_key(key, index), stream, read=True, retry=True)
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Failed to commit {key}: {exc}") from exc

    def _release(self, key: str) -> None:
        with self._lock:
            self._editing.discard(key)

    def _check_version(self, app_version: str) -> None:
        meta_path = self._directory / DISK_CACHE_META_NAME
        expected = {"app_version": app_version, "value_count": self._value_count}
        try:
            current = json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            current = None
        except (OSError, ValueError) as exc:
            LOGGER.warning("Unreadable disk cache metadata at %s: %s", meta_path, exc)
            current = None

        if current == expected:
            return
        if current is not None or len(self._store):
            LOGGER.info("Disk cache version changed (%s -> %s); discarding entries", current, expected)
        try:
            self._store.clear(retry=True)
            tmp_path = meta_path.with_suffix(meta_path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(expected), encoding="utf-8")
            tmp_path.replace(meta_path)
        except _STORE_ERRORS as exc:
            raise DiskIOFailure(f"Failed to reset disk cache at {self._directory}: {exc}") from exc

    @staticmethod
    def _value_key(key: str, index: int) -> str:
        return f"{key}.{index}"
