"""Backend location and dispatch.

Usage:
    from interlingua.dispatch import BackendDispatcher
    report = BackendDispatcher.from_configuration(config).dispatch(document, backends)
"""

from interlingua.dispatch.dispatcher import (
    BackendDispatcher,
    BackendOutcome,
    DispatchReport,
    OutcomeStatus,
    check_schema,
    destinations_overlap,
    group_by_destination,
)
from interlingua.dispatch.locator import (
    InstallStrategy,
    PipInstallStrategy,
    PluginLocator,
    Runnable,
    RunnableOrigin,
)
from interlingua.dispatch.protocol import (
    BACKEND_ARGUMENT,
    BackendRequest,
    GeneratedFile,
    Manifest,
    error_response,
    parse_response,
)

__all__ = [
    "BACKEND_ARGUMENT",
    "BackendDispatcher",
    "BackendOutcome",
    "BackendRequest",
    "DispatchReport",
    "GeneratedFile",
    "InstallStrategy",
    "Manifest",
    "OutcomeStatus",
    "PipInstallStrategy",
    "PluginLocator",
    "Runnable",
    "RunnableOrigin",
    "check_schema",
    "destinations_overlap",
    "error_response",
    "group_by_destination",
    "parse_response",
]
