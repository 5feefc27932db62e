"""Backend side of the dispatch protocol.

A Python backend is a function from a BackendRequest to generated files;
``run_backend`` handles everything else: reading the request from stdin,
writing the manifest or error report to stdout and choosing the exit
status that matches it.

Usage:
    def generate(request: BackendRequest) -> list[GeneratedFile]:
        ...

    def main() -> None:
        sys.exit(run_backend(generate))
"""

from __future__ import annotations

import json
import sys
from typing import BinaryIO, Callable, Iterable, TextIO

from interlingua.dispatch.protocol import BackendRequest, GeneratedFile, Manifest, error_response
from interlingua.types.errors import InterlinguaError, MalformedDocumentError
from interlingua.utils.logger import logger

GenerateFn = Callable[[BackendRequest], "Iterable[GeneratedFile] | Manifest"]


def run_backend(
    generate: GenerateFn,
    stdin: BinaryIO | None = None,
    stdout: TextIO | None = None,
    backend_id: str | None = None,
) -> int:
    """Serve one request and return the process exit status.

    ``backend_id`` is the identifier passed with ``--backend``; when given,
    a request addressed to another backend is refused.
    """
    stdin = stdin or sys.stdin.buffer
    stdout = stdout or sys.stdout

    try:
        request = BackendRequest.decode(stdin.read())
        if backend_id is not None and request.backend_id != backend_id:
            raise MalformedDocumentError(
                f"request is addressed to backend '{request.backend_id}' but this process "
                f"was started as '{backend_id}'"
            )
        logger.debug(
            f"Backend {request.backend_id}: {len(request.idl.items)} items for {request.idl.module_path}"
        )
        result = generate(request)
        manifest = result if isinstance(result, Manifest) else Manifest(tuple(result))
    except InterlinguaError as e:
        logger.error(f"Backend failed: {e}")
        json.dump(error_response(str(e)), stdout)
        stdout.flush()
        return 1
    except Exception as e:
        logger.exception("Backend failed with an unexpected error")
        json.dump(error_response(f"{type(e).__name__}: {e}"), stdout)
        stdout.flush()
        return 1

    json.dump(manifest.to_dict(), stdout, ensure_ascii=False)
    stdout.flush()
    return 0
