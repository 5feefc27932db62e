"""
Interlingua type definitions.

This module exports the error hierarchy shared by every stage of a build.
"""

from .errors import (
    BackendError,
    BackendFailureError,
    BackendNotFoundError,
    BackendTimeoutError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    IdlBuildError,
    IncompatibleSchemaError,
    InterlinguaError,
    InvalidConfigurationError,
    MalformedDocumentError,
    MalformedManifestError,
    MissingConfigurationError,
    SchemaError,
    StructuralError,
    TypeResolutionError,
    error_from_diagnostic,
)

__all__ = [
    "ErrorCode",
    "ErrorSeverity",
    "ErrorContext",
    "InterlinguaError",
    # Extraction
    "StructuralError",
    "TypeResolutionError",
    "IdlBuildError",
    "error_from_diagnostic",
    # Schema
    "SchemaError",
    "IncompatibleSchemaError",
    "MalformedDocumentError",
    # Backends
    "BackendError",
    "BackendFailureError",
    "BackendTimeoutError",
    "MalformedManifestError",
    "BackendNotFoundError",
    # Configuration
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
]
