"""Events published by the fetch coordinator."""

from __future__ import annotations

from dataclasses import dataclass

from .bus import Event


@dataclass(kw_only=True)
class ImageLoadedEvent(Event):
    """An image for *url* was resolved from the *source* tier."""

    url: str
    source: str


@dataclass(kw_only=True)
class ImageLoadFailedEvent(Event):
    """Every tier was exhausted for *url*; waiters keep their placeholder."""

    url: str
    reason: str
