"""Interface extraction pipeline.

Turns a module's declaration surface into an IDL document:

    ModuleSurface -> classify -> resolve types -> withhold -> IdlDocument

Usage:
    from interlingua.extraction import InterfaceExtractor
    extractor = InterfaceExtractor()
    document = extractor.extract_path("surface.json")
"""

from interlingua.extraction.classifier import (
    ClassifiedOperation,
    ClassifiedShape,
    Rejected,
    Skipped,
    categorize_operation,
    classify_declaration,
)
from interlingua.extraction.declarations import (
    DeclarationKind,
    ModuleSurface,
    RawCase,
    RawDeclaration,
    RawField,
    RawOperation,
    RawParameter,
    Receiver,
    Visibility,
    load_module_surface,
)
from interlingua.extraction.extractor import InterfaceExtractor, extract_module
from interlingua.extraction.protocols import JsonSurfaceScanner, SourceScanner
from interlingua.extraction.resolver import ResolutionFailure, TypePosition, TypeResolver
from interlingua.extraction.type_syntax import TypeExpr, TypeExprKind, parse_type_expr

__all__ = [
    "ClassifiedOperation",
    "ClassifiedShape",
    "DeclarationKind",
    "InterfaceExtractor",
    "JsonSurfaceScanner",
    "ModuleSurface",
    "RawCase",
    "RawDeclaration",
    "RawField",
    "RawOperation",
    "RawParameter",
    "Receiver",
    "Rejected",
    "ResolutionFailure",
    "Skipped",
    "SourceScanner",
    "TypeExpr",
    "TypeExprKind",
    "TypePosition",
    "TypeResolver",
    "Visibility",
    "categorize_operation",
    "classify_declaration",
    "extract_module",
    "load_module_surface",
    "parse_type_expr",
]
