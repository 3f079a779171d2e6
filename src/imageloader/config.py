"""Default configuration values for the image loader."""

from __future__ import annotations

from typing import Final

# Budget for decoded images held in memory.  Entries are accounted by their
# decoded pixel footprint, not by the size of the encoded download.
MEM_CACHE_DEFAULT_SIZE: Final[int] = 5 * 1024 * 1024

# Upper bound for the persistent tier.  The disk store evicts least-recently
# used entries once the encoded bytes on disk exceed this value.
DISK_CACHE_DEFAULT_SIZE: Final[int] = 10 * 1024 * 1024
DISK_CACHE_DIR_NAME: Final[str] = "bitmap"
DISK_CACHE_VALUE_COUNT: Final[int] = 1
DISK_CACHE_META_NAME: Final[str] = "cache.meta.json"

DOWNLOAD_CHUNK_SIZE: Final[int] = 8 * 1024
NETWORK_TIMEOUT_SEC: Final[float] = 15.0
DEFAULT_MAX_WORKERS: Final[int] = 4

DEFAULT_HASH_ALGORITHM: Final[str] = "sha256"

# Version stamp written next to the disk store when the installed package
# version cannot be resolved (e.g. running from a source checkout).
DEFAULT_APP_VERSION: Final[int] = 1
DISTRIBUTION_NAME: Final[str] = "imageloader"
APP_DIR_NAME: Final[str] = "imageloader"

# Tier names shared by the stats collector and the loaded/failed events.
TIER_MEMORY: Final[str] = "memory"
TIER_DISK: Final[str] = "disk"
TIER_NETWORK: Final[str] = "network"
