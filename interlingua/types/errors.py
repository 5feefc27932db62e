"""
Structured error handling for Interlingua.

Every failure the build can surface is an InterlinguaError subclass carrying
an ErrorCode, a user-facing message and an ErrorContext that names the item,
type location or backend involved, so a report can be acted on without
consulting the original source.

Extraction problems are first accumulated as Diagnostic records inside the
IDL document; they become exceptions only when the build is finalized
(see IdlBuildError).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any

from interlingua.constants import utcnow

if TYPE_CHECKING:
    from interlingua.idl.model import Diagnostic


class ErrorCode(IntEnum):
    """Internal error codes for categorization."""

    # Structural errors (1000-1999)
    AMBIGUOUS_VISIBILITY = 1001
    MULTIPLE_CONSTRUCTORS = 1002
    UNSUPPORTED_PUBLIC_ITEM = 1003
    DUPLICATE_NAME = 1004

    # Type errors (2000-2999)
    UNSUPPORTED_TYPE = 2001
    UNRESOLVED_USER_TYPE = 2002

    # Schema errors (3000-3999)
    INCOMPATIBLE_SCHEMA = 3001
    MALFORMED_DOCUMENT = 3002

    # Backend errors (4000-4999)
    BACKEND_FAILURE = 4001
    BACKEND_TIMEOUT = 4002
    MALFORMED_MANIFEST = 4003
    BACKEND_NOT_FOUND = 4004

    # Configuration errors (5000-5999)
    MISSING_CONFIGURATION = 5001
    INVALID_CONFIGURATION = 5002

    # Build errors (6000-6999)
    BUILD_FAILED = 6001


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for an error."""

    operation: str | None = None
    item_name: str | None = None
    location: str | None = None
    backend_id: str | None = None
    setting: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    additional_info: dict[str, Any] = field(default_factory=dict)


class InterlinguaError(Exception):
    """Base error class for Interlingua."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str,
        severity: str = ErrorSeverity.MEDIUM,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.severity = severity
        self.user_message = user_message
        self.context = context or ErrorContext()
        self.original_error = original_error

    def get_formatted_message(self) -> str:
        """Get a formatted error message for display to users."""
        parts = [
            f"[Error] {self.user_message}",
            f"   Code: {self.code.value}",
        ]

        detail = str(self)
        if detail and detail != self.user_message:
            parts.append(f"   Detail: {detail}")

        if self.context.operation:
            parts.append(f"   Operation: {self.context.operation}")
        if self.context.item_name:
            parts.append(f"   Item: {self.context.item_name}")
        if self.context.location:
            parts.append(f"   Location: {self.context.location}")
        if self.context.backend_id:
            parts.append(f"   Backend: {self.context.backend_id}")
        if self.context.setting:
            parts.append(f"   Setting: {self.context.setting}")

        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.__class__.__name__,
            "code": self.code.value,
            "message": str(self),
            "user_message": self.user_message,
            "severity": str(ErrorSeverity(self.severity).value),
            "context": {
                "operation": self.context.operation,
                "item_name": self.context.item_name,
                "location": self.context.location,
                "backend_id": self.context.backend_id,
                "setting": self.context.setting,
                "timestamp": self.context.timestamp.isoformat(),
                "additional_info": self.context.additional_info,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


# ============================================================================
# Extraction errors
# ============================================================================


class StructuralError(InterlinguaError):
    """A public declaration violates the structural rules of the subset.

    Fatal to extraction of the affected item only.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        item_name: str | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            user_message=message,
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="extract", item_name=item_name, location=location
            ),
        )


class TypeResolutionError(InterlinguaError):
    """A type reference could not be resolved to a canonical descriptor."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        item_name: str | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            user_message=message,
            severity=ErrorSeverity.MEDIUM,
            context=ErrorContext(
                operation="resolve_types", item_name=item_name, location=location
            ),
        )


class IdlBuildError(InterlinguaError):
    """Raised when an extracted document still carries diagnostics."""

    def __init__(self, errors: list[StructuralError | TypeResolutionError]) -> None:
        self.errors = errors
        noun = "diagnostic" if len(errors) == 1 else "diagnostics"
        super().__init__(
            code=ErrorCode.BUILD_FAILED,
            message=f"interface extraction reported {len(errors)} {noun}",
            user_message="The public interface is outside the translatable subset.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="build",
                additional_info={"diagnostics": [str(e) for e in errors]},
            ),
        )

    @classmethod
    def from_diagnostics(cls, diagnostics: "list[Diagnostic] | tuple[Diagnostic, ...]") -> "IdlBuildError":
        return cls([error_from_diagnostic(d) for d in diagnostics])


# ============================================================================
# Schema errors
# ============================================================================


class SchemaError(InterlinguaError):
    """Base class for IDL schema problems."""


class IncompatibleSchemaError(SchemaError):
    """A backend requires a newer IDL schema than the one produced."""

    def __init__(self, backend_id: str, required: int, produced: int) -> None:
        self.backend_id = backend_id
        self.required = required
        self.produced = produced
        super().__init__(
            code=ErrorCode.INCOMPATIBLE_SCHEMA,
            message=(
                f"backend '{backend_id}' requires IDL schema >= {required}, "
                f"document has schema {produced}"
            ),
            user_message="A requested backend does not understand this IDL version.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="dispatch",
                backend_id=backend_id,
                additional_info={"required": required, "produced": produced},
            ),
        )


class MalformedDocumentError(SchemaError):
    """A serialized IDL document could not be decoded."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_DOCUMENT,
            message=message,
            user_message="The IDL document is malformed.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="decode"),
            original_error=original_error,
        )


# ============================================================================
# Backend errors
# ============================================================================


class BackendError(InterlinguaError):
    """Failure of a single backend invocation.

    ``diagnostic_output`` is the backend's raw stderr, carried unmodified.
    """

    def __init__(
        self,
        code: ErrorCode,
        backend_id: str,
        message: str,
        diagnostic_output: bytes = b"",
        exit_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.backend_id = backend_id
        self.diagnostic_output = diagnostic_output
        self.exit_code = exit_code
        super().__init__(
            code=code,
            message=f"{backend_id}: {message}",
            user_message=message,
            severity=ErrorSeverity.MEDIUM,
            context=ErrorContext(
                operation="dispatch",
                backend_id=backend_id,
                additional_info={"exit_code": exit_code},
            ),
            original_error=original_error,
        )

    @property
    def diagnostic_text(self) -> str:
        """The raw diagnostic output decoded for display."""
        return self.diagnostic_output.decode("utf-8", errors="replace")


class BackendFailureError(BackendError):
    """Backend reported an error or exited with an unexpected status."""

    def __init__(
        self,
        backend_id: str,
        message: str,
        diagnostic_output: bytes = b"",
        exit_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.BACKEND_FAILURE,
            backend_id,
            message,
            diagnostic_output=diagnostic_output,
            exit_code=exit_code,
            original_error=original_error,
        )


class BackendTimeoutError(BackendError):
    """Backend did not finish within its timeout and was terminated."""

    def __init__(
        self, backend_id: str, timeout_seconds: float, diagnostic_output: bytes = b""
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            ErrorCode.BACKEND_TIMEOUT,
            backend_id,
            f"timed out after {timeout_seconds:g}s and was terminated",
            diagnostic_output=diagnostic_output,
        )


class MalformedManifestError(BackendError):
    """Backend exited successfully but its response is not a valid manifest."""

    def __init__(
        self,
        backend_id: str,
        message: str,
        diagnostic_output: bytes = b"",
        exit_code: int | None = 0,
    ) -> None:
        super().__init__(
            ErrorCode.MALFORMED_MANIFEST,
            backend_id,
            message,
            diagnostic_output=diagnostic_output,
            exit_code=exit_code,
        )


class BackendNotFoundError(BackendError):
    """No runnable could be located for a backend identifier."""

    def __init__(
        self, backend_id: str, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(
            ErrorCode.BACKEND_NOT_FOUND, backend_id, message, original_error=original_error
        )


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigurationError(InterlinguaError):
    """Error related to configuration issues. Fatal before extraction."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        code: ErrorCode = ErrorCode.INVALID_CONFIGURATION,
        user_message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            user_message=user_message or "Configuration error occurred.",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="configure", setting=setting),
            original_error=original_error,
        )


class MissingConfigurationError(ConfigurationError):
    """A required setting is absent and cannot be prompted for."""

    def __init__(self, setting: str) -> None:
        super().__init__(
            f"required setting '{setting}' is not configured",
            setting=setting,
            code=ErrorCode.MISSING_CONFIGURATION,
            user_message=f"Missing required configuration '{setting}'.",
        )


class InvalidConfigurationError(ConfigurationError):
    """A setting has a value of the wrong shape."""

    def __init__(
        self, message: str, setting: str | None = None, original_error: Exception | None = None
    ) -> None:
        super().__init__(
            message,
            setting=setting,
            code=ErrorCode.INVALID_CONFIGURATION,
            user_message="Invalid configuration value.",
            original_error=original_error,
        )


def error_from_diagnostic(diagnostic: "Diagnostic") -> StructuralError | TypeResolutionError:
    """Promote an accumulated Diagnostic into its exception type."""
    from interlingua.idl.model import DiagnosticKind

    code = {
        DiagnosticKind.AMBIGUOUS_VISIBILITY: ErrorCode.AMBIGUOUS_VISIBILITY,
        DiagnosticKind.MULTIPLE_CONSTRUCTORS: ErrorCode.MULTIPLE_CONSTRUCTORS,
        DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM: ErrorCode.UNSUPPORTED_PUBLIC_ITEM,
        DiagnosticKind.DUPLICATE_NAME: ErrorCode.DUPLICATE_NAME,
        DiagnosticKind.UNSUPPORTED_TYPE: ErrorCode.UNSUPPORTED_TYPE,
        DiagnosticKind.UNRESOLVED_USER_TYPE: ErrorCode.UNRESOLVED_USER_TYPE,
    }[diagnostic.kind]
    location = str(diagnostic.location) if diagnostic.location else None
    error_cls = StructuralError if diagnostic.is_structural else TypeResolutionError
    return error_cls(code, diagnostic.render(), item_name=diagnostic.item, location=location)
