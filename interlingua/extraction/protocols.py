"""Scanner protocol for the extraction pipeline.

The extractor never parses origin source itself. It consumes the abstract
declaration surface produced by a SourceScanner; any front end that can
emit a ModuleSurface plugs in here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from interlingua.extraction.declarations import ModuleSurface, load_module_surface


@runtime_checkable
class SourceScanner(Protocol):
    """Abstraction over origin-language front ends."""

    @property
    def name(self) -> str:
        """Scanner identifier (e.g., 'json')."""
        ...

    def scan(self, source: str | Path) -> ModuleSurface:
        """Produce the declaration surface of one module."""
        ...


class JsonSurfaceScanner:
    """Reads a ModuleSurface previously written by an external scanner."""

    @property
    def name(self) -> str:
        return "json"

    def scan(self, source: str | Path) -> ModuleSurface:
        return load_module_surface(source)
