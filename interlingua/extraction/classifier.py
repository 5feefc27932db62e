"""Structural classification of raw declarations.

``classify_declaration`` is a pure function of one declaration's shape:
its visibility, the privacy of its fields and the shape of its associated
operations. Names never influence the outcome.

The result is one of:
    ClassifiedShape  the declaration maps onto an IDL item kind
    Rejected         the declaration is public but outside the subset
    Skipped          the declaration is not exported (private or ignored)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Union

from interlingua.extraction.declarations import (
    DeclarationKind,
    ModuleSurface,
    RawDeclaration,
    RawOperation,
    Receiver,
    Visibility,
)
from interlingua.extraction.type_syntax import TypeExpr, TypeExprKind
from interlingua.idl.model import Diagnostic, DiagnosticKind, ItemKind, MethodKind


@dataclass(frozen=True)
class ClassifiedOperation:
    operation: RawOperation
    kind: MethodKind


@dataclass(frozen=True)
class ClassifiedShape:
    """A declaration mapped onto an item kind, with types still unresolved."""

    kind: ItemKind
    declaration: RawDeclaration
    operations: tuple[ClassifiedOperation, ...] = ()
    # reexport only
    target: str | None = None
    target_shape: ClassifiedShape | None = None

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def is_type(self) -> bool:
        if self.kind is ItemKind.REEXPORT:
            return self.target_shape is not None and self.target_shape.is_type
        return self.kind is not ItemKind.FUNCTION

    @property
    def constructor(self) -> ClassifiedOperation | None:
        for op in self.operations:
            if op.kind is MethodKind.CONSTRUCTOR:
                return op
        return None


@dataclass(frozen=True)
class Rejected:
    declaration: RawDeclaration
    diagnostics: tuple[Diagnostic, ...]

    @property
    def name(self) -> str:
        return self.declaration.name


@dataclass(frozen=True)
class Skipped:
    declaration: RawDeclaration
    reason: str

    @property
    def name(self) -> str:
        return self.declaration.name


Classification = Union[ClassifiedShape, Rejected, Skipped]


def _reject(
    decl: RawDeclaration, kind: DiagnosticKind, message: str, location=None
) -> Rejected:
    diagnostic = Diagnostic(
        kind=kind,
        message=message,
        location=location or decl.location,
        item=decl.name,
    )
    return Rejected(decl, (diagnostic,))


# ============================================================================
# Operations
# ============================================================================


def _returns_self(returns: TypeExpr | None, type_name: str) -> bool:
    if returns is None or returns.kind is not TypeExprKind.PATH or returns.args:
        return False
    return returns.name == "Self" or returns.name == type_name


def _returns_self_fallibly(returns: TypeExpr | None, type_name: str) -> bool:
    if returns is None or returns.kind is not TypeExprKind.PATH:
        return False
    if returns.last_segment != "Result" or not returns.args:
        return False
    return _returns_self(returns.args[0], type_name)


def categorize_operation(
    operation: RawOperation, type_name: str, is_resource: bool
) -> MethodKind:
    """Assign a method category from the receiver and return shape."""
    receiver = operation.receiver
    if receiver is Receiver.REF_MUT:
        return MethodKind.INSTANCE_MUTATING
    if receiver is Receiver.REF:
        return MethodKind.INSTANCE_READONLY
    if receiver is Receiver.VALUE:
        if _returns_self(operation.returns, type_name):
            return MethodKind.BUILDER
        return MethodKind.INSTANCE_CONSUMING
    if is_resource and (
        _returns_self(operation.returns, type_name)
        or _returns_self_fallibly(operation.returns, type_name)
    ):
        return MethodKind.CONSTRUCTOR
    return MethodKind.STATIC


def _exported_operations(decl: RawDeclaration) -> list[RawOperation]:
    return [op for op in decl.operations if op.is_public and not op.ignored]


def _classify_operations(
    decl: RawDeclaration, kind: ItemKind
) -> tuple[ClassifiedShape, None] | tuple[None, Rejected]:
    is_resource = kind is ItemKind.RESOURCE
    classified: list[ClassifiedOperation] = []
    diagnostics: list[Diagnostic] = []

    for op in _exported_operations(decl):
        if op.generics:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
                    message=f"operation '{op.name}' declares generic parameters",
                    location=op.location or decl.location,
                    item=decl.name,
                )
            )
            continue
        classified.append(ClassifiedOperation(op, categorize_operation(op, decl.name, is_resource)))

    constructors = [c for c in classified if c.kind is MethodKind.CONSTRUCTOR]
    if len(constructors) > 1:
        names = ", ".join(c.operation.name for c in constructors)
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.MULTIPLE_CONSTRUCTORS,
                message=f"resource declares {len(constructors)} constructors ({names})",
                location=constructors[1].operation.location or decl.location,
                item=decl.name,
            )
        )

    if diagnostics:
        return None, Rejected(decl, tuple(diagnostics))
    return ClassifiedShape(kind, decl, tuple(classified)), None


# ============================================================================
# Declarations
# ============================================================================


def _classify_struct(decl: RawDeclaration) -> Classification:
    if decl.generics:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            "generic structs are not translatable",
        )
    if any(f.name is None for f in decl.fields):
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            "structs with positional fields are not translatable",
        )

    public = [f for f in decl.fields if f.is_public]
    if public and len(public) < len(decl.fields):
        private = next(f for f in decl.fields if not f.is_public)
        return _reject(
            decl,
            DiagnosticKind.AMBIGUOUS_VISIBILITY,
            f"struct mixes public and non-public fields (e.g. '{public[0].name}' "
            f"and '{private.name}')",
        )

    if public:
        kind = ItemKind.RECORD
    elif _exported_operations(decl):
        kind = ItemKind.RESOURCE
    else:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            "struct has no public fields and no public operations",
        )

    shape, rejected = _classify_operations(decl, kind)
    return shape if shape is not None else rejected


def _classify_enum(decl: RawDeclaration) -> Classification:
    if decl.generics:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            "generic enums are not translatable",
        )
    shape, rejected = _classify_operations(decl, ItemKind.VARIANT)
    return shape if shape is not None else rejected


def _classify_function(decl: RawDeclaration) -> Classification:
    if decl.generics:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            "generic functions are not translatable",
        )
    return ClassifiedShape(ItemKind.FUNCTION, decl)


def _is_absolute(target: str, surface: ModuleSurface) -> bool:
    head = target.split("::")[0]
    return head == "crate" or head == surface.root


def _classify_reexport(
    decl: RawDeclaration,
    surface: ModuleSurface,
    ignore: frozenset[str],
    visited: frozenset[str],
) -> Classification:
    target = decl.target or ""
    if not target or target.endswith("*"):
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            f"glob re-export '{target}' is not translatable",
        )
    if not _is_absolute(target, surface):
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            f"re-export '{target}' must use an absolute path",
        )

    canonical = "crate::" + target.partition("::")[2]
    if canonical in visited:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            f"re-export chain through '{target}' is cyclic",
        )

    referenced = surface.lookup(target)
    if referenced is None:
        return _reject(
            decl,
            DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
            f"re-export target '{target}' was not found",
        )

    # The alias makes the target public, whatever its declared visibility
    exported = replace(referenced, visibility=Visibility.PUBLIC)
    inner = _classify(exported, surface, ignore, visited | {canonical})
    if isinstance(inner, Skipped):
        return Skipped(decl, f"re-exported declaration is skipped: {inner.reason}")
    if isinstance(inner, Rejected):
        return Rejected(
            decl,
            tuple(replace(d, item=decl.name) for d in inner.diagnostics),
        )
    if inner.kind is ItemKind.REEXPORT:
        # Flatten chains so the alias points at the final declaration
        return ClassifiedShape(
            ItemKind.REEXPORT,
            decl,
            target=inner.target,
            target_shape=inner.target_shape,
        )
    return ClassifiedShape(ItemKind.REEXPORT, decl, target=canonical, target_shape=inner)


def _classify(
    decl: RawDeclaration,
    surface: ModuleSurface,
    ignore: frozenset[str],
    visited: frozenset[str],
) -> Classification:
    if not decl.is_public:
        return Skipped(decl, f"{decl.visibility} declaration")
    if decl.ignored:
        return Skipped(decl, "marked as ignored")
    if decl.name in ignore:
        return Skipped(decl, "listed in the ignore configuration")

    kind = decl.kind
    if kind is DeclarationKind.FUNCTION:
        return _classify_function(decl)
    if kind is DeclarationKind.STRUCT:
        return _classify_struct(decl)
    if kind is DeclarationKind.ENUM:
        return _classify_enum(decl)
    if kind is DeclarationKind.REEXPORT:
        return _classify_reexport(decl, surface, ignore, visited)

    detail = f" ({decl.detail})" if decl.detail else ""
    return _reject(
        decl,
        DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
        f"public declaration{detail} is outside the translatable subset",
    )


def classify_declaration(
    decl: RawDeclaration,
    surface: ModuleSurface | None = None,
    ignore: Iterable[str] = (),
) -> Classification:
    """Classify one declaration.

    Args:
        decl: The declaration to classify
        surface: Module surface used to resolve re-export targets
        ignore: Declaration names excluded by configuration

    Returns:
        ClassifiedShape, Rejected or Skipped
    """
    surface = surface or ModuleSurface(module_path="crate")
    return _classify(decl, surface, frozenset(ignore), frozenset())
