"""Shared constants and helpers for Interlingua.

Centralizes the IDL schema version, backend naming conventions, the
built-in configuration defaults and timezone-aware datetime helpers.
"""

from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime.

    Usable directly as a ``default_factory`` in dataclass fields.
    """
    return datetime.now(timezone.utc)

# Version of the IDL document layout produced by this extractor.
# Bump whenever a backend could misread a document written by the new code.
SCHEMA_VERSION: int = 1

# Backends are located by this executable name prefix plus their identifier.
BACKEND_PREFIX: str = "interlingua-"

# Placeholder substituted by the backend identifier in ``backend_command``.
BACKEND_PLACEHOLDER: str = "{backend}"

# Project configuration lives under this directory of the project root.
CONFIG_DIR_NAME: str = ".interlingua"
CONFIG_FILE_NAME: str = "config.json"

# Settings that must be present after all configuration layers are merged.
REQUIRED_SETTINGS: tuple[str, ...] = ("module_path",)

# Lowest-priority configuration layer.
DEFAULT_CONFIG: dict[str, Any] = {
    "ignore": [],
    "backends": {},
    "backend_command": None,
    "backend_dirs": [f"{CONFIG_DIR_NAME}/bin"],
    "allow_install": False,
    "max_workers": 4,
    "timeout_seconds": 120.0,
}

# Upper bound on backend stderr bytes included in serialized reports (1 MB).
MAX_DIAGNOSTIC_OUTPUT: int = 1_000_000
