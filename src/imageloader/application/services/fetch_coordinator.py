"""Tiered image resolution (memory, disk, network) with request dedup."""

from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ...config import DEFAULT_MAX_WORKERS, TIER_DISK, TIER_MEMORY, TIER_NETWORK
from ...core.cache_key import hash_key_for_disk
from ...errors import DecodeFailure, DiskIOFailure, EditorStateError, NetworkFailure
from ...errors.handler import ErrorHandler, ErrorSeverity
from ...events.bus import EventBus
from ...events.loader_events import ImageLoadedEvent, ImageLoadFailedEvent
from ...infrastructure.services.cache_stats import CacheStatsCollector
from ...infrastructure.services.disk_lru_cache import DiskLruCache
from ...infrastructure.services.memory_cache import MemoryImageCache
from ...infrastructure.services.network_fetcher import NetworkFetcher
from ..interfaces import BindTarget, Dispatcher, ImageDecoder

LOGGER = logging.getLogger(__name__)

LoadCallback = Callable[[str, Optional[Any]], None]


class ImmediateDispatcher(Dispatcher):
    """Run callbacks on whichever thread posts them.

    Suitable for headless callers and tests.  GUI code should use the Qt
    dispatcher so bind targets are only touched on the UI thread.
    """

    def post(self, callback: Callable[[], None]) -> None:
        callback()


@dataclass
class InFlightRequest:
    """One running load for *url* and everyone waiting on its outcome."""

    url: str
    waiters: list[Callable[[Optional[Any]], None]] = field(default_factory=list)


class _TargetDelivery:
    """Waiter that paints *url* into *target* if the slot still expects it."""

    def __init__(self, target: BindTarget, url: str):
        self._target = target
        self._url = url

    def __call__(self, image: Optional[Any]) -> None:
        if image is None:
            return
        if self._target.get_tag() != self._url:
            LOGGER.debug("Discarding stale delivery of %s", self._url)
            return
        self._target.set_image(image)


class FetchCoordinator:
    """Resolve images for bind targets through the memory, disk and network tiers.

    ``request`` is called from the UI context.  Memory hits are delivered
    synchronously; everything else runs as one job per url on a bounded
    worker pool.  Concurrent requests for the same url join the running job
    instead of starting another, and every waiter is notified exactly once
    through the dispatcher.  Results for slots whose tag moved on are dropped
    at delivery time; the job itself always runs to completion so the caches
    stay warm.

    *disk_cache* may be ``None`` (or become unusable at runtime), in which
    case the coordinator keeps working as a memory-only cache in front of
    the network.
    """

    def __init__(
        self,
        memory_cache: MemoryImageCache,
        disk_cache: DiskLruCache | None,
        fetcher: NetworkFetcher,
        decoder: ImageDecoder,
        *,
        dispatcher: Dispatcher | None = None,
        executor: ThreadPoolExecutor | None = None,
        stats: CacheStatsCollector | None = None,
        event_bus: EventBus | None = None,
        error_handler: ErrorHandler | None = None,
        key_func: Callable[[str], str] = hash_key_for_disk,
    ):
        self._memory = memory_cache
        self._disk = disk_cache
        self._fetcher = fetcher
        self._decoder = decoder
        self._dispatcher = dispatcher or ImmediateDispatcher()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=DEFAULT_MAX_WORKERS, thread_name_prefix="image-fetch"
        )
        self._stats = stats
        self._events = event_bus
        self._errors = error_handler or ErrorHandler(LOGGER, event_bus)
        self._key_func = key_func

        self._in_flight: dict[str, InFlightRequest] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def request(self, target: BindTarget, url: Optional[str]) -> None:
        """Bind *url* to *target*, showing the placeholder until it resolves."""

        if not url or not url.strip():
            target.set_tag(None)
            target.set_placeholder()
            return

        target.set_tag(url)
        target.set_placeholder()

        image = self._memory_lookup(url)
        if image is not None:
            target.set_image(image)
            return

        self._join_or_start(url, _TargetDelivery(target, url))

    def load(self, url: str, callback: LoadCallback) -> None:
        """Resolve *url* without a bind target.

        *callback* receives ``(url, image)`` on the dispatcher, with ``None``
        as the image when every tier failed.
        """

        if not url or not url.strip():
            self._dispatcher.post(lambda: callback(url, None))
            return

        image = self._memory_lookup(url)
        if image is not None:
            self._dispatcher.post(lambda: callback(url, image))
            return

        self._join_or_start(url, lambda result: callback(url, result))

    def get_cached(self, url: str) -> Optional[Any]:
        """Return the decoded image for *url* from memory only."""
        return self._memory.get(url)

    def pending_urls(self) -> set[str]:
        """Expose the set of in-flight urls for diagnostics/testing."""
        with self._lock:
            return set(self._in_flight)

    def invalidate(self, url: str) -> None:
        """Forget *url* in the memory and disk tiers."""
        self._memory.remove(url)
        if self._disk is None:
            return
        try:
            self._disk.remove(self._key_func(url))
        except DiskIOFailure as exc:
            self._report(exc, url, TIER_DISK)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the worker pool if it was created by this coordinator."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Request bookkeeping
    # ------------------------------------------------------------------
    def _memory_lookup(self, url: str) -> Optional[Any]:
        image = self._memory.get(url)
        if self._stats:
            if image is not None:
                self._stats.record_hit(TIER_MEMORY)
            else:
                self._stats.record_miss(TIER_MEMORY)
        return image

    def _join_or_start(self, url: str, waiter: Callable[[Optional[Any]], None]) -> None:
        with self._lock:
            pending = self._in_flight.get(url)
            if pending is not None:
                pending.waiters.append(waiter)
                LOGGER.debug("Joined in-flight load of %s (%d waiters)", url, len(pending.waiters))
                return
            self._in_flight[url] = InFlightRequest(url, [waiter])

        try:
            self._executor.submit(self._run, url)
        except RuntimeError:
            # Executor already shut down; fail the request instead of leaking it.
            LOGGER.warning("Loader is shut down; dropping request for %s", url)
            self._complete(url, None, "loader shut down")

    def _run(self, url: str) -> None:
        image: Optional[Any] = None
        reason = "unknown"
        try:
            image, reason = self._resolve(url)
        except Exception:
            LOGGER.exception("Unexpected failure while loading %s", url)
            reason = "unexpected error"
        finally:
            self._complete(url, image, reason)

    def _complete(self, url: str, image: Optional[Any], reason: str) -> None:
        with self._lock:
            request = self._in_flight.pop(url, None)
        waiters = list(request.waiters) if request is not None else []

        if image is None and self._events:
            self._events.publish(ImageLoadFailedEvent(url=url, reason=reason))

        def deliver() -> None:
            for waiter in waiters:
                try:
                    waiter(image)
                except Exception:
                    LOGGER.exception("Delivery callback for %s failed", url)

        self._dispatcher.post(deliver)

    # ------------------------------------------------------------------
    # Tier resolution (worker thread)
    # ------------------------------------------------------------------
    def _resolve(self, url: str) -> tuple[Optional[Any], str]:
        if self._disk is None:
            return self._fetch_without_disk(url)

        try:
            return self._resolve_through_disk(self._disk, url, self._key_func(url))
        except (DiskIOFailure, EditorStateError) as exc:
            # The disk tier broke somewhere in this job; serve it from memory only.
            self._report(exc, url, TIER_DISK)
            return self._fetch_without_disk(url)

    def _resolve_through_disk(
        self, disk: DiskLruCache, url: str, key: str
    ) -> tuple[Optional[Any], str]:
        image = self._read_disk(disk, url, key)
        if image is not None:
            self._promote(url, image, TIER_DISK)
            return image, ""

        editor = disk.edit(key)
        try:
            if editor is None:
                LOGGER.debug("Another writer is populating %s; not fetching again", url)
            else:
                self._fetcher.fetch_into(url, editor)
        except NetworkFailure as exc:
            self._report(exc, url, TIER_NETWORK)
            return None, "download failed"
        finally:
            disk.flush()

        image = self._read_disk(disk, url, key, count=False)
        if image is None:
            return None, "no readable entry after download"
        if self._stats and editor is not None:
            self._stats.record_hit(TIER_NETWORK)
        self._promote(url, image, TIER_NETWORK)
        return image, ""

    def _read_disk(
        self, disk: DiskLruCache, url: str, key: str, *, count: bool = True
    ) -> Optional[Any]:
        """Decode the stored entry for *key*; ``DiskIOFailure`` propagates."""
        snapshot = disk.get(key)
        if snapshot is None:
            if self._stats and count:
                self._stats.record_miss(TIER_DISK)
            return None

        with snapshot:
            try:
                image = self._decoder.decode(snapshot.get_input_stream(0))
            except DecodeFailure as exc:
                self._report(exc, url, TIER_DISK, count=count)
                return None
        if self._stats and count:
            self._stats.record_hit(TIER_DISK)
        return image

    def _fetch_without_disk(self, url: str) -> tuple[Optional[Any], str]:
        buffer = io.BytesIO()
        try:
            self._fetcher.fetch(url, buffer)
            image = self._decoder.decode(buffer.getvalue())
        except NetworkFailure as exc:
            self._report(exc, url, TIER_NETWORK)
            return None, "download failed"
        except DecodeFailure as exc:
            self._report(exc, url, TIER_NETWORK)
            return None, "undecodable response"
        if self._stats:
            self._stats.record_hit(TIER_NETWORK)
        self._promote(url, image, TIER_NETWORK)
        return image, ""

    def _promote(self, url: str, image: Any, source: str) -> None:
        self._memory.put(url, image)
        if self._events:
            self._events.publish(ImageLoadedEvent(url=url, source=source))

    def _report(self, exc: Exception, url: str, tier: str, *, count: bool = True) -> None:
        if self._stats and count:
            self._stats.record_error(tier)
        self._errors.handle(exc, ErrorSeverity.WARNING, {"url": url, "tier": tier})


__all__ = ["FetchCoordinator", "ImmediateDispatcher", "InFlightRequest"]
