"""Resolve where the disk tier lives and which version stamp it carries."""

from __future__ import annotations

import logging
import os
import sys
from importlib import metadata
from pathlib import Path

from ..config import APP_DIR_NAME, DEFAULT_APP_VERSION, DISTRIBUTION_NAME

LOGGER = logging.getLogger(__name__)


def default_private_cache_root() -> Path:
    """Return the per-user cache directory for the current platform."""

    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base) / APP_DIR_NAME / "Cache"
        return Path.home() / "AppData" / "Local" / APP_DIR_NAME / "Cache"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_DIR_NAME
    base = os.environ.get("XDG_CACHE_HOME")
    if base:
        return Path(base) / APP_DIR_NAME
    return Path.home() / ".cache" / APP_DIR_NAME


def select_cache_dir(
    unique_name: str,
    *,
    private_dir: Path,
    external_dir: Path | None = None,
    external_mounted: bool = False,
    external_removable: bool = True,
) -> Path:
    """Pick the directory for the disk tier.

    External storage wins whenever it is available and either currently
    mounted or not flagged as removable; otherwise the app-private directory
    is used.  The result is ``<base>/<unique_name>``.
    """

    if external_dir is not None and (external_mounted or not external_removable):
        base = external_dir
    else:
        base = private_dir
    return base / unique_name


def app_version() -> str:
    """Return the installed distribution version used to stamp the disk tier."""

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        LOGGER.debug("%s is not installed; using default version stamp", DISTRIBUTION_NAME)
        return str(DEFAULT_APP_VERSION)
