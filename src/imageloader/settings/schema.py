"""Schema helpers for the loader settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_MAX_WORKERS,
    DISK_CACHE_DEFAULT_SIZE,
    DISK_CACHE_DIR_NAME,
    DISK_CACHE_VALUE_COUNT,
    DOWNLOAD_CHUNK_SIZE,
    MEM_CACHE_DEFAULT_SIZE,
    NETWORK_TIMEOUT_SEC,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "imageloader/settings.schema.json",
    "type": "object",
    "required": ["schema", "memory", "disk", "storage", "network", "hashing"],
    "properties": {
        "schema": {"const": "imageloader/settings@1"},
        "memory": {
            "type": "object",
            "properties": {
                "budget_bytes": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": False,
        },
        "disk": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "max_bytes": {"type": "integer", "minimum": 1},
                "value_count": {"type": "integer", "minimum": 1},
                "directory": {"type": ["string", "null"]},
                "unique_name": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
        "storage": {
            "type": "object",
            "properties": {
                "external_directory": {"type": ["string", "null"]},
                "external_mounted": {"type": "boolean"},
                "external_removable": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "network": {
            "type": "object",
            "properties": {
                "timeout_sec": {"type": "number", "exclusiveMinimum": 0},
                "chunk_size": {"type": "integer", "minimum": 1},
                "max_workers": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": False,
        },
        "hashing": {
            "type": "object",
            "properties": {
                "algorithm": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "imageloader/settings@1",
    "memory": {
        "budget_bytes": MEM_CACHE_DEFAULT_SIZE,
    },
    "disk": {
        "enabled": True,
        "max_bytes": DISK_CACHE_DEFAULT_SIZE,
        "value_count": DISK_CACHE_VALUE_COUNT,
        "directory": None,
        "unique_name": DISK_CACHE_DIR_NAME,
    },
    "storage": {
        "external_directory": None,
        "external_mounted": False,
        "external_removable": True,
    },
    "network": {
        "timeout_sec": NETWORK_TIMEOUT_SEC,
        "chunk_size": DOWNLOAD_CHUNK_SIZE,
        "max_workers": DEFAULT_MAX_WORKERS,
    },
    "hashing": {
        "algorithm": DEFAULT_HASH_ALGORITHM,
    },
}

_SECTIONS = ("memory", "disk", "storage", "network", "hashing")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                merged.setdefault(key, {}).update(value)
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
