"""L3: stream image bodies from HTTP(S) into a writable sink."""

from __future__ import annotations

import logging
from typing import BinaryIO

import requests

from ...config import DOWNLOAD_CHUNK_SIZE, NETWORK_TIMEOUT_SEC
from ...errors import DiskIOFailure, NetworkFailure
from .disk_lru_cache import Editor

LOGGER = logging.getLogger(__name__)


class NetworkFetcher:
    """Download a URL in bounded chunks.

    The fetcher never retries; a failed transfer is reported to the caller,
    which decides what happens next.  The HTTP connection is always released
    back to the session's pool, whether the transfer succeeded or not.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        timeout: float = NETWORK_TIMEOUT_SEC,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._chunk_size = chunk_size
        self._timeout = timeout

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def close(self) -> None:
        """Close the HTTP session if it was created by this fetcher."""
        if self._owns_session:
            self._session.close()

    def fetch(self, url: str, sink: BinaryIO) -> int:
        """Write the body of *url* into *sink* and return the byte count.

        Raises :class:`NetworkFailure` for connection, timeout and HTTP status
        errors, and :class:`DiskIOFailure` when *sink* rejects a write.  The
        sink is left open; whatever was written before a failure is the
        caller's to discard.
        """
        try:
            response = self._session.get(url, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NetworkFailure(f"GET {url} failed: {exc}") from exc

        written = 0
        with response:
            try:
                response.raise_for_status()
                chunks = response.iter_content(chunk_size=self._chunk_size)
                for chunk in chunks:
                    if not chunk:
                        continue
                    try:
                        sink.write(chunk)
                    except OSError as exc:
                        raise DiskIOFailure(f"Failed writing body of {url}: {exc}") from exc
                    written += len(chunk)
            except requests.RequestException as exc:
                raise NetworkFailure(f"GET {url} failed: {exc}") from exc
        LOGGER.debug("Downloaded %d bytes from %s", written, url)
        return written

    def fetch_into(self, url: str, editor: Editor) -> int:
        """Stream *url* into value 0 of *editor*, commit it and return the byte count.

        On any failure the editor is aborted, so a partial body never becomes
        readable, and the error propagates.  Transfer problems surface as
        :class:`NetworkFailure`; a store that cannot take the body raises
        :class:`DiskIOFailure` or :class:`EditorStateError`, which lets the
        caller tell a broken disk apart from a broken download.
        """
        try:
            stream = editor.new_output_stream(0)
            written = self.fetch(url, stream)
        except BaseException:
            editor.abort()
            raise
        # A failed commit closes the editor itself.
        editor.commit()
        return written
