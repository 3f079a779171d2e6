"""Derive fixed-length disk keys from image URLs."""

from __future__ import annotations

import hashlib
import logging

from ..config import DEFAULT_HASH_ALGORITHM

LOGGER = logging.getLogger(__name__)

_INT32_MASK = 0xFFFFFFFF


def hash_key_for_disk(url: str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Return the disk cache key for *url*.

    The key is the lowercase hex digest of *url* under *algorithm*.  When the
    digest is unavailable in the running interpreter (unknown name, or blocked
    by a FIPS-restricted OpenSSL build) the key degrades to
    :func:`weak_string_key`, which is still deterministic but collides far more
    easily.
    """

    data = url.encode("utf-8")
    try:
        digest = hashlib.new(algorithm, data, usedforsecurity=False)
    except (ValueError, TypeError):
        LOGGER.warning(
            "Hash algorithm %r unavailable, falling back to weak string key", algorithm
        )
        return weak_string_key(url)
    return digest.hexdigest()


def weak_string_key(url: str) -> str:
    """Return the decimal form of a 31-multiplier rolling hash over *url*.

    Computed over UTF-16 code units and wrapped to a signed 32-bit integer so
    the same URL always maps to the same key across processes, unlike the
    salted built-in :func:`hash`.
    """

    value = 0
    encoded = url.encode("utf-16-be")
    for index in range(0, len(encoded), 2):
        unit = (encoded[index] << 8) | encoded[index + 1]
        value = (31 * value + unit) & _INT32_MASK
    if value & 0x80000000:
        value -= 1 << 32
    return str(value)


def is_available(algorithm: str) -> bool:
    """Return ``True`` when *algorithm* can be used by :func:`hash_key_for_disk`."""

    try:
        hashlib.new(algorithm, b"", usedforsecurity=False)
    except (ValueError, TypeError):
        return False
    return True


__all__ = ["hash_key_for_disk", "is_available", "weak_string_key"]
