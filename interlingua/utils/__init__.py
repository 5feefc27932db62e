"""
Interlingua utility modules.

This package provides shared utilities used across the Interlingua codebase:
- Logging (stderr only, build ID correlation)
- Security (backend identifier and manifest path validation)
- Serialization of report and configuration values
"""

# Logger
from .logger import (
    BuildContext,
    configure_logging,
    generate_build_id,
    get_build_context,
    get_build_id,
    is_debug_enabled,
    logger,
    run_with_build_context,
    with_build_id,
)

# Security
from .security import (
    get_unsafe_path_reason,
    is_safe_backend_id,
    is_safe_manifest_path,
)

# Serialization
from .serialization import (
    is_scalar,
    serialize_to_primitives,
)

__all__ = [
    # Logger
    "BuildContext",
    "configure_logging",
    "generate_build_id",
    "get_build_context",
    "get_build_id",
    "is_debug_enabled",
    "logger",
    "run_with_build_context",
    "with_build_id",
    # Security
    "get_unsafe_path_reason",
    "is_safe_backend_id",
    "is_safe_manifest_path",
    # Serialization
    "is_scalar",
    "serialize_to_primitives",
]
