"""Backend dispatcher.

Runs every requested backend as an isolated process against one shared,
read-only IDL document and aggregates the outcomes:

- **Schema gate**: before anything is spawned, every backend's minimum
  schema version is compared with the document's; one incompatible
  backend aborts the whole dispatch with IncompatibleSchemaError.
- **Destinations**: backends whose destinations overlap (identical, or
  one nested in the other) run one after another in request order;
  disjoint groups run concurrently in a bounded thread pool.
- **Isolation**: a failure, timeout or malformed manifest is recorded in
  that backend's outcome and never cancels its siblings.
"""

from __future__ import annotations

import subprocess
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Sequence

from interlingua.config.resolver import BackendSettings
from interlingua.constants import MAX_DIAGNOSTIC_OUTPUT
from interlingua.dispatch.locator import PluginLocator
from interlingua.dispatch.protocol import BACKEND_ARGUMENT, BackendRequest, Manifest, parse_response
from interlingua.dispatch.subprocess_util import format_argv, subprocess_kwargs
from interlingua.idl.model import IdlDocument
from interlingua.types.errors import (
    BackendError,
    BackendFailureError,
    BackendNotFoundError,
    BackendTimeoutError,
    IncompatibleSchemaError,
    MalformedManifestError,
)
from interlingua.utils.logger import get_build_context, logger, run_with_build_context


class OutcomeStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"


def _status_for(error: BackendError) -> OutcomeStatus:
    if isinstance(error, BackendTimeoutError):
        return OutcomeStatus.TIMED_OUT
    if isinstance(error, MalformedManifestError):
        return OutcomeStatus.MALFORMED
    if isinstance(error, BackendNotFoundError):
        return OutcomeStatus.NOT_FOUND
    return OutcomeStatus.FAILED


@dataclass
class BackendOutcome:
    """Result of one backend invocation: a manifest or an error."""

    backend_id: str
    destination: Path
    status: OutcomeStatus
    manifest: Manifest | None = None
    error: BackendError | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def diagnostic_output(self) -> bytes:
        """Raw stderr of a failed invocation (empty on success)."""
        return self.error.diagnostic_output if self.error else b""

    @property
    def diagnostic_truncated(self) -> bool:
        """Whether to_dict shortens the diagnostic output."""
        return len(self.diagnostic_output) > MAX_DIAGNOSTIC_OUTPUT

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend_id,
            "destination": str(self.destination),
            "status": str(self.status),
            "generated_files": self.manifest.paths if self.manifest else [],
            "error": self.error.to_dict() if self.error else None,
            "diagnostic_output": self.diagnostic_output[:MAX_DIAGNOSTIC_OUTPUT].decode(
                "utf-8", errors="replace"
            ),
            "diagnostic_truncated": self.diagnostic_truncated,
            "duration_ms": self.duration_ms,
        }


@dataclass
class DispatchReport:
    """Per-backend outcomes, in request order."""

    schema_version: int
    outcomes: list[BackendOutcome] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def all_succeeded(self) -> bool:
        return all(o.succeeded for o in self.outcomes)

    @property
    def failed(self) -> list[BackendOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def outcome(self, backend_id: str) -> BackendOutcome | None:
        for o in self.outcomes:
            if o.backend_id == backend_id:
                return o
        return None

    def summary(self) -> str:
        lines = [f"Schema:   {self.schema_version}"]
        for o in self.outcomes:
            if o.succeeded:
                detail = f"{len(o.manifest.files) if o.manifest else 0} file(s)"
            else:
                detail = o.error.user_message if o.error else ""
            lines.append(f"{o.backend_id:<12} {o.status.upper():<10} {detail}")
        passed = sum(1 for o in self.outcomes if o.succeeded)
        lines.append(f"Overall:  {passed}/{len(self.outcomes)} succeeded")
        lines.append(f"Duration: {self.total_duration_ms}ms")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "all_succeeded": self.all_succeeded,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "total_duration_ms": self.total_duration_ms,
        }


# ============================================================================
# Scheduling helpers
# ============================================================================


def check_schema(document: IdlDocument, backends: Sequence[BackendSettings]) -> None:
    """Raise IncompatibleSchemaError for the first backend that needs a newer schema."""
    for backend in backends:
        if backend.min_schema_version > document.schema_version:
            raise IncompatibleSchemaError(
                backend.backend_id, backend.min_schema_version, document.schema_version
            )


def destinations_overlap(a: Path, b: Path) -> bool:
    """Identical paths, or one nested inside the other."""
    a, b = Path(a).resolve(), Path(b).resolve()
    return a == b or a in b.parents or b in a.parents


def group_by_destination(backends: Sequence[BackendSettings]) -> list[list[int]]:
    """Partition request indices into groups of transitively overlapping destinations.

    Groups are ordered by their first member; members keep request order.
    """
    parent = list(range(len(backends)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i in range(len(backends)):
        for j in range(i + 1, len(backends)):
            if destinations_overlap(backends[i].destination, backends[j].destination):
                parent[find(j)] = find(i)

    groups: dict[int, list[int]] = {}
    for i in range(len(backends)):
        groups.setdefault(find(i), []).append(i)
    return sorted(groups.values(), key=lambda g: g[0])


# ============================================================================
# Dispatcher
# ============================================================================


class BackendDispatcher:
    """Runs backends against an IDL document.

    Args:
        locator: Resolves backend identifiers to runnables
        max_workers: Upper bound on concurrently running destination groups
        default_timeout: Seconds allowed per invocation when a backend sets none
    """

    def __init__(
        self,
        locator: PluginLocator | None = None,
        max_workers: int = 4,
        default_timeout: float = 120.0,
    ) -> None:
        self.locator = locator or PluginLocator()
        self.max_workers = max(1, max_workers)
        self.default_timeout = default_timeout

    @classmethod
    def from_configuration(cls, config, locator: PluginLocator | None = None) -> BackendDispatcher:
        """Build a dispatcher from an EffectiveConfiguration."""
        return cls(
            locator=locator or PluginLocator.from_configuration(config),
            max_workers=config.max_workers,
            default_timeout=config.timeout_seconds,
        )

    def dispatch(
        self, document: IdlDocument, backends: Sequence[BackendSettings]
    ) -> DispatchReport:
        """Run every backend and collect one outcome per request.

        Raises:
            IncompatibleSchemaError: Before any process is started
        """
        start = time.monotonic()
        check_schema(document, backends)

        outcomes: list[BackendOutcome | None] = [None] * len(backends)
        groups = group_by_destination(backends)
        logger.info(
            f"Dispatching {len(backends)} backend(s) in {len(groups)} destination group(s)"
        )

        context = get_build_context()

        def run_group(indices: list[int]) -> None:
            for index in indices:
                outcomes[index] = self.invoke(document, backends[index])

        workers = min(self.max_workers, len(groups)) or 1
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="backend") as pool:
            futures = [
                pool.submit(run_with_build_context, context, lambda g=group: run_group(g))
                for group in groups
            ]
            for future in futures:
                future.result()

        report = DispatchReport(
            schema_version=document.schema_version,
            outcomes=[o for o in outcomes if o is not None],
            total_duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            f"Dispatch finished: {len(backends) - len(report.failed)}/{len(backends)} succeeded"
        )
        return report

    def invoke(self, document: IdlDocument, backend: BackendSettings) -> BackendOutcome:
        """Run one backend; every failure becomes part of the outcome."""
        start = time.monotonic()
        backend_id = backend.backend_id

        try:
            manifest = self._run(document, backend)
        except BackendError as error:
            logger.warning(f"Backend {backend_id} {_status_for(error)}: {error}")
            return BackendOutcome(
                backend_id=backend_id,
                destination=backend.destination,
                status=_status_for(error),
                error=error,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except Exception as e:
            logger.exception(f"Backend {backend_id} raised unexpectedly: {e}")
            error = BackendFailureError(
                backend_id, f"unexpected {type(e).__name__}: {e}", original_error=e
            )
            return BackendOutcome(
                backend_id=backend_id,
                destination=backend.destination,
                status=OutcomeStatus.FAILED,
                error=error,
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        logger.info(f"Backend {backend_id} produced {len(manifest.files)} file(s)")
        return BackendOutcome(
            backend_id=backend_id,
            destination=backend.destination,
            status=OutcomeStatus.SUCCEEDED,
            manifest=manifest,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def _run(self, document: IdlDocument, backend: BackendSettings) -> Manifest:
        backend_id = backend.backend_id
        runnable = self.locator.locate(backend_id)
        argv = [*runnable.argv, BACKEND_ARGUMENT, backend_id]
        timeout = backend.timeout_seconds
        if timeout is None:
            timeout = self.default_timeout
        request = BackendRequest(
            backend_id=backend_id,
            idl=document,
            destination=str(backend.destination),
            config=backend.options,
        )

        logger.debug(f"Running backend {backend_id}: {format_argv(argv)}")
        try:
            proc = subprocess.run(
                argv,
                input=request.encode(),
                capture_output=True,
                timeout=timeout,
                **subprocess_kwargs(),
            )
        except subprocess.TimeoutExpired as e:
            raise BackendTimeoutError(backend_id, timeout, e.stderr or b"") from e
        except OSError as e:
            raise BackendFailureError(
                backend_id, f"could not be started: {e}", original_error=e
            ) from e

        return parse_response(
            backend_id,
            proc.returncode,
            proc.stdout,
            proc.stderr,
        )
