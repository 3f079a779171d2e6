"""Tests for NetworkFetcher streaming and editor handling."""

from __future__ import annotations

import io
import sqlite3
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from imageloader.errors import DiskIOFailure, EditorStateError, NetworkFailure
from imageloader.infrastructure.services.disk_lru_cache import DiskLruCache
from imageloader.infrastructure.services.network_fetcher import NetworkFetcher

URL = "https://img.example.com/a.png"


def _response(chunks, *, status_error: Exception | None = None, fail_midway: bool = False):
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    if status_error is not None:
        response.raise_for_status.side_effect = status_error

    def _iter_content(chunk_size):
        for chunk in chunks:
            yield chunk
        if fail_midway:
            raise requests.ConnectionError("connection reset")

    response.iter_content.side_effect = _iter_content
    return response


def _session(response=None, *, error: Exception | None = None):
    session = MagicMock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


@pytest.fixture()
def disk(tmp_path: Path):
    cache = DiskLruCache.open(tmp_path / "bitmap", "1")
    yield cache
    cache.close()


class TestFetch:
    def test_streams_all_chunks(self):
        response = _response([b"ab", b"", b"cd"])
        session = _session(response)
        fetcher = NetworkFetcher(session, chunk_size=2, timeout=3.0)
        sink = io.BytesIO()

        assert fetcher.fetch(URL, sink) == 4
        assert sink.getvalue() == b"abcd"
        session.get.assert_called_once_with(URL, stream=True, timeout=3.0)
        response.iter_content.assert_called_once_with(chunk_size=2)
        response.__exit__.assert_called_once()

    def test_connection_error(self):
        fetcher = NetworkFetcher(_session(error=requests.ConnectionError("refused")))
        with pytest.raises(NetworkFailure):
            fetcher.fetch(URL, io.BytesIO())

    def test_http_status_error_releases_connection(self):
        response = _response([b"nope"], status_error=requests.HTTPError("404"))
        fetcher = NetworkFetcher(_session(response))
        sink = io.BytesIO()
        with pytest.raises(NetworkFailure):
            fetcher.fetch(URL, sink)
        assert sink.getvalue() == b""
        response.__exit__.assert_called_once()

    def test_mid_stream_failure(self):
        fetcher = NetworkFetcher(_session(_response([b"ab"], fail_midway=True)))
        with pytest.raises(NetworkFailure):
            fetcher.fetch(URL, io.BytesIO())

    def test_sink_write_failure(self):
        sink = MagicMock()
        sink.write.side_effect = OSError("disk full")
        fetcher = NetworkFetcher(_session(_response([b"ab"])))
        with pytest.raises(DiskIOFailure):
            fetcher.fetch(URL, sink)

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            NetworkFetcher(chunk_size=0)

    def test_close_only_owned_session(self):
        session = _session(_response([]))
        NetworkFetcher(session).close()
        session.close.assert_not_called()


class TestFetchInto:
    def test_success_commits(self, disk: DiskLruCache):
        fetcher = NetworkFetcher(_session(_response([b"im", b"age"])))
        editor = disk.edit("k")

        assert fetcher.fetch_into(URL, editor) == 5
        with disk.get("k") as snapshot:
            assert snapshot.get_bytes() == b"image"
        assert disk.edit("k") is not None

    def test_transfer_failure_aborts(self, disk: DiskLruCache):
        fetcher = NetworkFetcher(_session(_response([b"par"], fail_midway=True)))
        editor = disk.edit("k")

        with pytest.raises(NetworkFailure):
            fetcher.fetch_into(URL, editor)
        assert disk.get("k") is None
        # Aborted editors release the key.
        assert disk.edit("k") is not None

    def test_transfer_failure_keeps_previous_entry(self, disk: DiskLruCache):
        editor = disk.edit("k")
        editor.new_output_stream(0).write(b"old")
        editor.commit()
        fetcher = NetworkFetcher(_session(error=requests.Timeout("slow")))

        with pytest.raises(NetworkFailure):
            fetcher.fetch_into(URL, disk.edit("k"))
        with disk.get("k") as snapshot:
            assert snapshot.get_bytes() == b"old"

    def test_store_failure_on_commit_is_a_disk_error(self, disk: DiskLruCache, monkeypatch):
        def _full(*args, **kwargs):
            raise sqlite3.OperationalError("database or disk is full")

        monkeypatch.setattr(disk._store, "set", _full)
        fetcher = NetworkFetcher(_session(_response([b"image"])))

        with pytest.raises(DiskIOFailure):
            fetcher.fetch_into(URL, disk.edit("k"))
        monkeypatch.undo()
        assert disk.get("k") is None
        assert disk.edit("k") is not None

    def test_unexpected_error_aborts_and_propagates(self, disk: DiskLruCache):
        session = _session(error=KeyboardInterrupt())
        fetcher = NetworkFetcher(session)
        editor = disk.edit("k")

        with pytest.raises(KeyboardInterrupt):
            fetcher.fetch_into(URL, editor)
        assert disk.edit("k") is not None

    def test_closed_editor_raises(self, disk: DiskLruCache):
        fetcher = NetworkFetcher(_session(_response([b"x"])))
        editor = disk.edit("k")
        editor.abort()
        with pytest.raises(EditorStateError):
            fetcher.fetch_into(URL, editor)
