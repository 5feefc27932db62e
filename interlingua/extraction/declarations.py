"""Raw declaration surface handed over by the source scanner.

These types describe what was declared in the origin source, before any
classification: visibility, field privacy, receivers and unresolved type
expressions. A ModuleSurface can be loaded from the scanner's JSON output.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from interlingua.extraction.type_syntax import TypeExpr, type_expr_from_json
from interlingua.idl.model import SourceLocation
from interlingua.types.errors import MalformedDocumentError


class Visibility(StrEnum):
    PUBLIC = "public"
    CRATE = "crate"  # visible inside the library only
    PRIVATE = "private"


class DeclarationKind(StrEnum):
    FUNCTION = "function"
    STRUCT = "struct"
    ENUM = "enum"
    REEXPORT = "reexport"
    OTHER = "other"


class Receiver(StrEnum):
    NONE = "none"
    REF = "&self"
    REF_MUT = "&mut self"
    VALUE = "self"


@dataclass(frozen=True)
class RawParameter:
    name: str
    type: TypeExpr

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawParameter:
        return cls(name=data["name"], type=type_expr_from_json(data["type"]))


@dataclass(frozen=True)
class RawOperation:
    """An associated operation declared for a struct or enum."""

    name: str
    visibility: Visibility = Visibility.PUBLIC
    receiver: Receiver = Receiver.NONE
    parameters: tuple[RawParameter, ...] = ()
    returns: TypeExpr | None = None
    is_async: bool = False
    ignored: bool = False
    generics: tuple[str, ...] = ()
    location: SourceLocation | None = None

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawOperation:
        returns = data.get("returns")
        return cls(
            name=data["name"],
            visibility=Visibility(data.get("visibility", "public")),
            receiver=Receiver(data.get("receiver", "none")),
            parameters=tuple(RawParameter.from_dict(p) for p in data.get("parameters", [])),
            returns=type_expr_from_json(returns) if returns is not None else None,
            is_async=bool(data.get("is_async", False)),
            ignored=bool(data.get("ignored", False)),
            generics=tuple(data.get("generics", [])),
            location=SourceLocation.from_dict(data.get("location")),
        )


@dataclass(frozen=True)
class RawField:
    """A struct or enum-case field. Positional fields have no name."""

    name: str | None
    type: TypeExpr
    visibility: Visibility = Visibility.PUBLIC
    location: SourceLocation | None = None

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawField:
        return cls(
            name=data.get("name"),
            type=type_expr_from_json(data["type"]),
            visibility=Visibility(data.get("visibility", "public")),
            location=SourceLocation.from_dict(data.get("location")),
        )


@dataclass(frozen=True)
class RawCase:
    """An enum case."""

    name: str
    fields: tuple[RawField, ...] = ()
    ignored: bool = False
    location: SourceLocation | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawCase:
        return cls(
            name=data["name"],
            fields=tuple(RawField.from_dict(f) for f in data.get("fields", [])),
            ignored=bool(data.get("ignored", False)),
            location=SourceLocation.from_dict(data.get("location")),
        )


@dataclass(frozen=True)
class RawDeclaration:
    """One top-level declaration of a module."""

    kind: DeclarationKind
    name: str
    visibility: Visibility = Visibility.PUBLIC
    location: SourceLocation | None = None
    generics: tuple[str, ...] = ()
    ignored: bool = False
    # function
    parameters: tuple[RawParameter, ...] = ()
    returns: TypeExpr | None = None
    is_async: bool = False
    # struct / enum
    fields: tuple[RawField, ...] = ()
    cases: tuple[RawCase, ...] = ()
    operations: tuple[RawOperation, ...] = ()
    # reexport
    target: str | None = None
    # other
    detail: str | None = None

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawDeclaration:
        returns = data.get("returns")
        return cls(
            kind=DeclarationKind(data["kind"]),
            name=data["name"],
            visibility=Visibility(data.get("visibility", "public")),
            location=SourceLocation.from_dict(data.get("location")),
            generics=tuple(data.get("generics", [])),
            ignored=bool(data.get("ignored", False)),
            parameters=tuple(RawParameter.from_dict(p) for p in data.get("parameters", [])),
            returns=type_expr_from_json(returns) if returns is not None else None,
            is_async=bool(data.get("is_async", False)),
            fields=tuple(RawField.from_dict(f) for f in data.get("fields", [])),
            cases=tuple(RawCase.from_dict(c) for c in data.get("cases", [])),
            operations=tuple(RawOperation.from_dict(o) for o in data.get("operations", [])),
            target=data.get("target"),
            detail=data.get("detail"),
        )


@dataclass(frozen=True)
class ModuleSurface:
    """All declarations of one module plus the library-wide lookup table.

    ``external`` maps absolute paths (``crate::shapes::Point``) to
    declarations defined elsewhere in the library; re-exports are resolved
    against it.
    """

    module_path: str
    declarations: tuple[RawDeclaration, ...] = ()
    external: dict[str, RawDeclaration] = field(default_factory=dict)

    @property
    def root(self) -> str:
        """Name of the library root, the first segment of the module path."""
        return self.module_path.split("::")[0]

    def lookup(self, path: str) -> RawDeclaration | None:
        """Find a declaration by absolute path, accepting ``crate::`` or the root name.

        Paths into this module itself resolve against its own declarations.
        """
        if path in self.external:
            return self.external[path]
        head, _, rest = path.partition("::")
        if head == "crate":
            absolute = alternate = f"{self.root}::{rest}"
        elif head == self.root:
            absolute, alternate = path, f"crate::{rest}"
        else:
            return None
        if alternate in self.external:
            return self.external[alternate]

        parent, _, name = absolute.rpartition("::")
        if parent != self.module_path:
            return None
        for decl in self.declarations:
            if decl.name == name and decl.kind is not DeclarationKind.REEXPORT:
                return decl
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModuleSurface:
        try:
            return cls(
                module_path=data["module_path"],
                declarations=tuple(RawDeclaration.from_dict(d) for d in data.get("declarations", [])),
                external={
                    path: RawDeclaration.from_dict(d)
                    for path, d in data.get("external", {}).items()
                },
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedDocumentError(f"invalid module surface: {e!r}", original_error=e) from e


def load_module_surface(path: str | Path) -> ModuleSurface:
    """Load a ModuleSurface from a scanner output file."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"{path}: not valid JSON: {e}", original_error=e) from e
    if not isinstance(data, dict):
        raise MalformedDocumentError(f"{path}: module surface must be a JSON object")
    return ModuleSurface.from_dict(data)
