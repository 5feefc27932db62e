"""JSON text encoding of IDL documents.

The encoding is deterministic: ``encode_document(decode_document(text))``
reproduces ``text`` byte for byte for any text this module produced.
"""

from __future__ import annotations

import json
from typing import Any

from interlingua.idl.model import IdlDocument
from interlingua.types.errors import MalformedDocumentError


def encode_document(document: IdlDocument) -> str:
    """Serialize a document to JSON text."""
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"


def decode_document(text: str | bytes) -> IdlDocument:
    """Parse JSON text produced by encode_document.

    Raises:
        MalformedDocumentError: If the text is not JSON or has an unknown shape
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"IDL document is not valid JSON: {e}", original_error=e) from e
    if not isinstance(data, dict):
        raise MalformedDocumentError("IDL document must be a JSON object")
    return IdlDocument.from_dict(data)
