"""Tiered image loading for recycled list views."""

from .application.interfaces import BindTarget, Dispatcher, ImageDecoder
from .application.services.fetch_coordinator import FetchCoordinator, ImmediateDispatcher
from .appctx import LoaderContext
from .core.cache_key import hash_key_for_disk
from .infrastructure.services.disk_lru_cache import DiskLruCache, Editor, Snapshot
from .infrastructure.services.memory_cache import MemoryImageCache
from .infrastructure.services.network_fetcher import NetworkFetcher

__all__ = [
    "BindTarget",
    "Dispatcher",
    "DiskLruCache",
    "Editor",
    "FetchCoordinator",
    "ImageDecoder",
    "ImmediateDispatcher",
    "LoaderContext",
    "MemoryImageCache",
    "NetworkFetcher",
    "Snapshot",
    "hash_key_for_disk",
]
