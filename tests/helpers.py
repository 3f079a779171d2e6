"""Shared fakes for the loader tests."""

from __future__ import annotations

import io
import threading
from typing import BinaryIO, Optional

from PIL import Image

from imageloader.application.interfaces import BindTarget
from imageloader.errors import NetworkFailure
from imageloader.infrastructure.services.network_fetcher import NetworkFetcher


def png_bytes(size: tuple[int, int] = (4, 4), color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class RecordingTarget(BindTarget):
    """Bind target that records every call in order."""

    def __init__(self) -> None:
        self.tag: Optional[str] = None
        self.calls: list[tuple[str, object]] = []
        self.images: list[object] = []
        self.delivered = threading.Event()

    def set_tag(self, key):
        self.tag = key
        self.calls.append(("tag", key))

    def get_tag(self):
        return self.tag

    def set_placeholder(self):
        self.calls.append(("placeholder", None))

    def set_image(self, image):
        self.calls.append(("image", image))
        self.images.append(image)
        self.delivered.set()


class StubFetcher(NetworkFetcher):
    """Serves canned bodies per URL and counts network hits.

    When *gate* is given, every fetch blocks until the gate is set so tests
    can pile up concurrent requests before the first one completes.
    """

    def __init__(self, bodies: dict[str, bytes] | None = None, gate: threading.Event | None = None):
        super().__init__()
        self.bodies = dict(bodies or {})
        self.gate = gate
        self.calls: list[str] = []
        self.fail_after: dict[str, int] = {}
        self._lock = threading.Lock()
        self.started = threading.Event()

    def _body(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if url not in self.bodies:
            raise NetworkFailure(f"404 for {url}")
        return self.bodies[url]

    def fetch(self, url: str, sink: BinaryIO) -> int:
        body = self._body(url)
        cutoff = self.fail_after.get(url)
        if cutoff is not None:
            sink.write(body[:cutoff])
            raise NetworkFailure(f"connection reset while reading {url}")
        sink.write(body)
        return len(body)

    def count(self, url: str) -> int:
        with self._lock:
            return self.calls.count(url)
