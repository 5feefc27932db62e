"""Interface extractor: module surface in, IDL document out.

The InterfaceExtractor is the single entry point for turning a module's
declaration surface into an IdlDocument. It runs in three passes:

1. **Classify** every declaration (pure, per declaration). Private and
   ignored declarations drop out; public declarations outside the subset
   become diagnostics.
2. **Resolve** every type site of every classified shape against the
   names that survived classification. Failures are collected per site;
   sibling items continue.
3. **Withhold** to a fixpoint: an item that references a withheld item is
   itself withheld.

All diagnostics are accumulated in one pass and the output is sorted, so
the same declarations give the same document regardless of their order.

Usage:
    extractor = InterfaceExtractor(ignore=["internal_helper"])
    document = extractor.extract(surface)
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Iterable

from interlingua.constants import SCHEMA_VERSION
from interlingua.extraction.classifier import (
    ClassifiedOperation,
    ClassifiedShape,
    Rejected,
    Skipped,
    classify_declaration,
)
from interlingua.extraction.declarations import ModuleSurface, RawField
from interlingua.extraction.protocols import JsonSurfaceScanner, SourceScanner
from interlingua.extraction.resolver import ResolutionFailure, TypePosition, TypeResolver
from interlingua.idl.model import (
    Diagnostic,
    DiagnosticKind,
    Field,
    Function,
    IdlDocument,
    Item,
    ItemKind,
    Method,
    MethodKind,
    ReExport,
    Record,
    Resource,
    SourceLocation,
    Variant,
    VariantArm,
)
from interlingua.utils.logger import logger


class _ItemBuilder:
    """Resolves the type sites of one shape, collecting every failure."""

    def __init__(self, resolver: TypeResolver, item_name: str) -> None:
        self.resolver = resolver
        self.item_name = item_name
        self.diagnostics: list[Diagnostic] = []

    def _fail(
        self, failure: ResolutionFailure, site: str, location: SourceLocation | None
    ) -> None:
        self.diagnostics.append(
            Diagnostic(
                kind=failure.kind,
                message=f"{site}: {failure.reason}",
                location=location,
                item=self.item_name,
            )
        )

    def fields(
        self,
        raw_fields: Iterable[RawField],
        owner: str,
        self_type: str | None,
        location: SourceLocation | None,
    ) -> tuple[Field, ...]:
        resolved: list[Field] = []
        for index, raw in enumerate(raw_fields):
            name = raw.name if raw.name is not None else f"_{index}"
            site_location = raw.location or location
            try:
                field_type = self.resolver.resolve(raw.type, TypePosition.FIELD, self_type)
            except ResolutionFailure as failure:
                self._fail(failure, f"field '{name}' of '{owner}'", site_location)
                continue
            resolved.append(Field(name, field_type, raw.location))
        return tuple(resolved)

    def method(
        self, classified: ClassifiedOperation, self_type: str, location: SourceLocation | None
    ) -> Method | None:
        op = classified.operation
        signature, failures = self.resolver.resolve_signature(
            op.parameters, op.returns, op.is_async, self_type=self_type
        )
        for failure in failures:
            self._fail(failure, f"operation '{self_type}::{op.name}'", op.location or location)
        if signature is None:
            return None
        return Method(op.name, classified.kind, signature, op.location)

    def methods(
        self,
        operations: Iterable[ClassifiedOperation],
        self_type: str,
        location: SourceLocation | None,
    ) -> tuple[Method, ...]:
        built = [self.method(op, self_type, location) for op in operations]
        return tuple(m for m in built if m is not None)

    def build(self, shape: ClassifiedShape) -> Item | None:
        decl = shape.declaration
        name = decl.name
        location = decl.location

        if shape.kind is ItemKind.FUNCTION:
            signature, failures = self.resolver.resolve_signature(
                decl.parameters, decl.returns, decl.is_async
            )
            for failure in failures:
                self._fail(failure, f"function '{name}'", location)
            item: Item | None = Function(name, signature, location) if signature else None

        elif shape.kind is ItemKind.RECORD:
            fields = self.fields(decl.fields, name, name, location)
            methods = self.methods(shape.operations, name, location)
            item = Record(name, fields, methods, location)

        elif shape.kind is ItemKind.VARIANT:
            arms = tuple(
                VariantArm(
                    case.name,
                    self.fields(case.fields, f"{name}::{case.name}", name, case.location or location),
                    case.location,
                )
                for case in decl.cases
                if not case.ignored
            )
            methods = self.methods(shape.operations, name, location)
            item = Variant(name, arms, methods, location)

        elif shape.kind is ItemKind.RESOURCE:
            constructor = None
            others: list[ClassifiedOperation] = []
            for op in shape.operations:
                if op.kind is MethodKind.CONSTRUCTOR:
                    constructor = self.method(op, name, location)
                else:
                    others.append(op)
            methods = self.methods(others, name, location)
            item = Resource(name, constructor, methods, location)

        else:
            target = shape.target_shape
            inner = self.build(target) if target is not None else None
            item = ReExport(name, shape.target or "", inner, location) if inner else None

        if self.diagnostics:
            return None
        return item


class InterfaceExtractor:
    """Builds IDL documents from module surfaces.

    Args:
        ignore: Declaration names excluded by configuration
        scanner: Front end used by extract_path (defaults to JSON surfaces)
        schema_version: Schema version stamped on produced documents
    """

    def __init__(
        self,
        ignore: Iterable[str] = (),
        scanner: SourceScanner | None = None,
        schema_version: int = SCHEMA_VERSION,
    ) -> None:
        self._ignore = frozenset(ignore)
        self._scanner = scanner or JsonSurfaceScanner()
        self._schema_version = schema_version

    @property
    def scanner(self) -> SourceScanner:
        return self._scanner

    # ================================================================
    # Entry points
    # ================================================================

    def extract_path(self, source: str | Path) -> IdlDocument:
        """Scan a source and extract its document."""
        surface = self._scanner.scan(source)
        return self.extract(surface)

    def build(self, surface: ModuleSurface) -> IdlDocument:
        """Extract and require a clean document.

        Raises:
            IdlBuildError: If any diagnostic was recorded
        """
        return self.extract(surface).require_clean()

    def extract(self, surface: ModuleSurface) -> IdlDocument:
        """Extract the public interface of a module, accumulating all diagnostics."""
        logger.debug(
            f"Extracting {surface.module_path}: {len(surface.declarations)} declarations"
        )
        diagnostics: list[Diagnostic] = []
        withheld: set[str] = set()

        # Pass 1: classification
        classifications = [
            classify_declaration(decl, surface, self._ignore) for decl in surface.declarations
        ]
        exported = [c for c in classifications if not isinstance(c, Skipped)]
        for skipped in classifications:
            if isinstance(skipped, Skipped):
                logger.debug(f"Skipping {skipped.name}: {skipped.reason}")

        counts = Counter(c.name for c in exported)
        duplicates = {name for name, count in counts.items() if count > 1}
        for c in exported:
            if c.name in duplicates:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.DUPLICATE_NAME,
                        message=f"public name '{c.name}' is declared {counts[c.name]} times",
                        location=c.declaration.location,
                        item=c.name,
                    )
                )
        withheld |= duplicates

        shapes: list[ClassifiedShape] = []
        for c in exported:
            if c.name in duplicates:
                continue
            if isinstance(c, Rejected):
                diagnostics.extend(c.diagnostics)
                withheld.add(c.name)
            else:
                shapes.append(c)

        # Pass 2: type resolution
        resolver = TypeResolver(
            type_names=(s.name for s in shapes if s.is_type),
            function_names=(s.name for s in shapes if not s.is_type),
            withheld_names=withheld,
        )
        built: dict[str, Item] = {}
        for shape in shapes:
            builder = _ItemBuilder(resolver, shape.name)
            item = builder.build(shape)
            if item is None:
                diagnostics.extend(builder.diagnostics)
                withheld.add(shape.name)
            else:
                built[shape.name] = item

        # Pass 3: withhold dependents until nothing changes
        changed = True
        while changed:
            changed = False
            for name in sorted(built):
                item = built[name]
                missing = sorted(n for n in item.referenced_names() if n not in built)
                if not missing:
                    continue
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNRESOLVED_USER_TYPE,
                        message="references withheld item(s): " + ", ".join(missing),
                        location=item.location,
                        item=name,
                    )
                )
                del built[name]
                withheld.add(name)
                changed = True

        items = tuple(built[name] for name in sorted(built))
        ordered = tuple(sorted(set(diagnostics), key=Diagnostic.sort_key))

        if ordered:
            logger.warning(
                f"{surface.module_path}: {len(items)} items, {len(ordered)} diagnostics, "
                f"{len(withheld)} withheld"
            )
        else:
            logger.info(f"{surface.module_path}: extracted {len(items)} items")

        return IdlDocument(
            schema_version=self._schema_version,
            module_path=surface.module_path,
            items=items,
            diagnostics=ordered,
        )


def extract_module(surface: ModuleSurface, ignore: Iterable[str] = ()) -> IdlDocument:
    """Convenience wrapper around InterfaceExtractor.extract."""
    return InterfaceExtractor(ignore=ignore).extract(surface)
