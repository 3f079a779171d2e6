"""Session-owned wiring of the loader components."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Optional

from .application.interfaces import Dispatcher
from .application.services.fetch_coordinator import FetchCoordinator
from .core.cache_key import hash_key_for_disk
from .errors import DiskIOFailure
from .errors.handler import ErrorHandler
from .events.bus import EventBus
from .infrastructure.services.cache_stats import CacheStatsCollector
from .infrastructure.services.disk_lru_cache import DiskLruCache
from .infrastructure.services.image_decoder import PillowImageDecoder
from .infrastructure.services.memory_cache import MemoryImageCache
from .infrastructure.services.network_fetcher import NetworkFetcher
from .infrastructure.storage_paths import (
    app_version,
    default_private_cache_root,
    select_cache_dir,
)
from .settings.schema import merge_with_defaults

LOGGER = logging.getLogger(__name__)


def resolve_disk_dir(settings: dict[str, Any]) -> Path:
    """Return the disk-tier directory described by *settings*."""

    disk = settings["disk"]
    if disk.get("directory"):
        return Path(disk["directory"]).expanduser()
    storage = settings["storage"]
    external = storage.get("external_directory")
    return select_cache_dir(
        disk["unique_name"],
        private_dir=default_private_cache_root(),
        external_dir=Path(external).expanduser() if external else None,
        external_mounted=storage["external_mounted"],
        external_removable=storage["external_removable"],
    )


def open_disk_cache(settings: dict[str, Any]) -> Optional[DiskLruCache]:
    """Open the disk tier, or return ``None`` when disabled or unavailable."""

    disk = settings["disk"]
    if not disk["enabled"]:
        return None
    directory = resolve_disk_dir(settings)
    try:
        return DiskLruCache.open(
            directory,
            app_version(),
            value_count=disk["value_count"],
            max_size=disk["max_bytes"],
        )
    except DiskIOFailure as exc:
        LOGGER.warning("Disk cache unavailable, continuing without it: %s", exc)
        return None


@dataclass
class LoaderContext:
    """Caches, transport and coordinator for one UI session.

    The context owns every component it creates; :meth:`close` releases the
    worker pool, the HTTP session and the disk store.
    """

    settings: dict[str, Any]
    memory: MemoryImageCache
    disk: Optional[DiskLruCache]
    fetcher: NetworkFetcher
    decoder: PillowImageDecoder
    stats: CacheStatsCollector
    events: EventBus
    loader: FetchCoordinator
    executor: ThreadPoolExecutor
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        settings: dict[str, Any] | None = None,
        *,
        dispatcher: Dispatcher | None = None,
    ) -> "LoaderContext":
        resolved = merge_with_defaults(settings)
        decoder = PillowImageDecoder()
        memory: MemoryImageCache = MemoryImageCache(
            resolved["memory"]["budget_bytes"], size_of=decoder.size_of
        )
        disk = open_disk_cache(resolved)
        network = resolved["network"]
        fetcher = NetworkFetcher(
            chunk_size=network["chunk_size"], timeout=network["timeout_sec"]
        )
        stats = CacheStatsCollector()
        events = EventBus()
        executor = ThreadPoolExecutor(
            max_workers=network["max_workers"], thread_name_prefix="image-fetch"
        )
        loader = FetchCoordinator(
            memory,
            disk,
            fetcher,
            decoder,
            dispatcher=dispatcher,
            executor=executor,
            stats=stats,
            event_bus=events,
            error_handler=ErrorHandler(logging.getLogger("imageloader.errors"), events),
            key_func=partial(hash_key_for_disk, algorithm=resolved["hashing"]["algorithm"]),
        )
        return cls(
            settings=resolved,
            memory=memory,
            disk=disk,
            fetcher=fetcher,
            decoder=decoder,
            stats=stats,
            events=events,
            loader=loader,
            executor=executor,
        )

    def disk_key(self, url: str) -> str:
        return hash_key_for_disk(url, self.settings["hashing"]["algorithm"])

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.executor.shutdown(wait=True)
        self.events.shutdown()
        self.fetcher.close()
        if self.disk is not None:
            self.disk.close()

    def __enter__(self) -> "LoaderContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
