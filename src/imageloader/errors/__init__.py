"""Custom exception hierarchy for the image loader."""

from __future__ import annotations


class ImageLoaderError(Exception):
    """Base class for all custom errors raised by the image loader."""


class InfrastructureError(ImageLoaderError):
    """Base class for failures of a storage, codec or transport tier."""


# --- Tier failures ---

class DiskIOFailure(InfrastructureError):
    """Raised when the persistent store cannot be read or written."""


class EditorStateError(InfrastructureError):
    """Raised when a disk editor is committed, aborted or written out of order."""


class DecodeFailure(InfrastructureError):
    """Raised when encoded bytes cannot be turned into an image."""


class NetworkFailure(InfrastructureError):
    """Raised when a download fails because of connectivity or an HTTP error."""


# --- Settings ---

class SettingsError(ImageLoaderError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""


__all__ = [
    "DecodeFailure",
    "DiskIOFailure",
    "EditorStateError",
    "ImageLoaderError",
    "InfrastructureError",
    "NetworkFailure",
    "SettingsError",
    "SettingsLoadError",
    "SettingsValidationError",
]
