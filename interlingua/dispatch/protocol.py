"""Wire protocol between the driver and backend processes.

Request (driver -> backend stdin, one JSON object)::

    {"schema_version": 1, "backend": "<id>", "idl": {...},
     "config": {...}, "destination": "<path>"}

Response (backend stdout, one JSON object), which must agree with the
exit status:

    exit 0:        {"generated_files": [{"path": "...", "content": "..."}]}
    exit nonzero:  {"message": "...", "origin": "backend"}

A successful exit with anything but a valid manifest is a
MalformedManifestError; a nonzero exit is always a BackendFailureError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from interlingua.idl.model import IdlDocument
from interlingua.types.errors import (
    BackendFailureError,
    MalformedDocumentError,
    MalformedManifestError,
)
from interlingua.utils.security import get_unsafe_path_reason
from interlingua.utils.serialization import serialize_to_primitives

BACKEND_ARGUMENT = "--backend"
ERROR_ORIGIN = "backend"


@dataclass(frozen=True)
class BackendRequest:
    """Everything a backend receives for one invocation."""

    backend_id: str
    idl: IdlDocument
    destination: str
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def schema_version(self) -> int:
        return self.idl.schema_version

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "backend": self.backend_id,
            "idl": self.idl.to_dict(),
            "config": serialize_to_primitives(self.config),
            "destination": self.destination,
        }

    def encode(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def decode(cls, payload: str | bytes) -> BackendRequest:
        """Parse a request on the backend side.

        Raises:
            MalformedDocumentError: If the payload is not a valid request
        """
        try:
            data = json.loads(payload)
            request = cls(
                backend_id=data["backend"],
                idl=IdlDocument.from_dict(data["idl"]),
                destination=data["destination"],
                config=dict(data.get("config") or {}),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise MalformedDocumentError(f"invalid backend request: {e!r}", original_error=e) from e
        if request.schema_version != data.get("schema_version", request.schema_version):
            raise MalformedDocumentError("request schema_version disagrees with its IDL document")
        return request


@dataclass(frozen=True)
class GeneratedFile:
    """One artifact; ``path`` is relative to the backend's destination."""

    path: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "content": self.content}


@dataclass(frozen=True)
class Manifest:
    """A backend's successful result."""

    files: tuple[GeneratedFile, ...] = ()

    @property
    def paths(self) -> list[str]:
        return [f.path for f in self.files]

    def to_dict(self) -> dict[str, Any]:
        return {"generated_files": [f.to_dict() for f in self.files]}


def error_response(message: str) -> dict[str, str]:
    """The response a failing backend writes before exiting nonzero."""
    return {"message": message, "origin": ERROR_ORIGIN}


def _decode_json(stdout: bytes) -> Any:
    try:
        return json.loads(stdout.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _parse_manifest(backend_id: str, data: Any, stderr: bytes) -> Manifest:
    def malformed(message: str) -> MalformedManifestError:
        return MalformedManifestError(backend_id, message, diagnostic_output=stderr)

    if not isinstance(data, dict):
        raise malformed("exited successfully but did not write a JSON object")
    if "generated_files" not in data:
        if data.get("origin") == ERROR_ORIGIN:
            raise malformed(f"reported an error but exited successfully: {data.get('message')!r}")
        raise malformed("response has no 'generated_files'")
    entries = data["generated_files"]
    if not isinstance(entries, list):
        raise malformed("'generated_files' must be a list")

    files: list[GeneratedFile] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise malformed(f"generated_files[{index}] is not an object")
        path, content = entry.get("path"), entry.get("content")
        if not isinstance(path, str) or not isinstance(content, str):
            raise malformed(f"generated_files[{index}] needs string 'path' and 'content'")
        reason = get_unsafe_path_reason(path)
        if reason:
            raise malformed(f"generated file '{path}' rejected: {reason}")
        if path in seen:
            raise malformed(f"generated file '{path}' is listed twice")
        seen.add(path)
        files.append(GeneratedFile(path, content))
    return Manifest(tuple(files))


def parse_response(backend_id: str, exit_code: int, stdout: bytes, stderr: bytes = b"") -> Manifest:
    """Interpret a finished backend process.

    Raises:
        MalformedManifestError: Exit 0 without a valid manifest
        BackendFailureError: Nonzero exit
    """
    data = _decode_json(stdout)
    if exit_code == 0:
        return _parse_manifest(backend_id, data, stderr)

    if (
        isinstance(data, dict)
        and data.get("origin") == ERROR_ORIGIN
        and isinstance(data.get("message"), str)
    ):
        message = data["message"]
    else:
        message = f"exited with status {exit_code} without an error report"
    raise BackendFailureError(backend_id, message, diagnostic_output=stderr, exit_code=exit_code)
