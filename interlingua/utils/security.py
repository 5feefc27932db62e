"""
Security utilities for Interlingua.

Backends are external programs; nothing they report is trusted. This
module validates the paths a backend asks to have written and the
identifiers used to build executable names.
"""

import re
from pathlib import PurePosixPath, PureWindowsPath

# ============================================================================
# Backend identifiers
# ============================================================================

# Identifiers become part of an executable name (interlingua-<id>)
_BACKEND_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def is_safe_backend_id(backend_id: str) -> bool:
    """
    Check if a backend identifier is safe to embed in an executable name.

    Args:
        backend_id: Identifier to check

    Returns:
        True if the identifier only uses letters, digits, '.', '_' and '-'
    """
    return bool(_BACKEND_ID_PATTERN.match(backend_id)) and ".." not in backend_id


# ============================================================================
# Manifest paths
# ============================================================================


def get_unsafe_path_reason(path: str) -> str | None:
    """
    Explain why a manifest path may not be materialized, if it may not.

    Manifest paths are relative to the backend's destination and must stay
    inside it.

    Args:
        path: Path as reported by a backend

    Returns:
        Reason string if unsafe, None otherwise
    """
    if not path:
        return "path is empty"

    if "\x00" in path:
        return "path contains a null byte"

    if PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute():
        return "path is absolute"

    if PureWindowsPath(path).drive:
        return "path names a drive"

    parts = re.split(r"[\\/]+", path)
    if any(part == ".." for part in parts):
        return "path escapes the destination"

    return None


def is_safe_manifest_path(path: str) -> bool:
    """
    Check if a manifest path stays inside the destination.

    Args:
        path: Path to check

    Returns:
        True if the path is relative and contains no traversal
    """
    return get_unsafe_path_reason(path) is None
