"""Language-neutral interface description (IDL).

Usage:
    from interlingua.idl import IdlDocument, encode_document, decode_document
    text = encode_document(document)
    assert decode_document(text) == document
"""

from interlingua.idl.codec import decode_document, encode_document
from interlingua.idl.model import (
    UNIT,
    Capability,
    CapabilityBoundType,
    CharacterType,
    CollectionKind,
    CollectionRepr,
    CollectionType,
    Diagnostic,
    DiagnosticKind,
    ErrorRepr,
    ErrorType,
    Field,
    Function,
    IdlDocument,
    Item,
    ItemKind,
    Method,
    MethodKind,
    OptionType,
    Ownership,
    Parameter,
    Primitive,
    PrimitiveType,
    ReExport,
    Record,
    RefKind,
    Resource,
    ResultType,
    Signature,
    SourceLocation,
    TextRepr,
    TextType,
    TupleType,
    TypeKind,
    TypeRef,
    UserDefinedType,
    Variant,
    VariantArm,
    item_from_dict,
    type_from_dict,
)

__all__ = [
    "UNIT",
    "Capability",
    "CapabilityBoundType",
    "CharacterType",
    "CollectionKind",
    "CollectionRepr",
    "CollectionType",
    "Diagnostic",
    "DiagnosticKind",
    "ErrorRepr",
    "ErrorType",
    "Field",
    "Function",
    "IdlDocument",
    "Item",
    "ItemKind",
    "Method",
    "MethodKind",
    "OptionType",
    "Ownership",
    "Parameter",
    "Primitive",
    "PrimitiveType",
    "ReExport",
    "Record",
    "RefKind",
    "Resource",
    "ResultType",
    "Signature",
    "SourceLocation",
    "TextRepr",
    "TextType",
    "TupleType",
    "TypeKind",
    "TypeRef",
    "UserDefinedType",
    "Variant",
    "VariantArm",
    "decode_document",
    "encode_document",
    "item_from_dict",
    "type_from_dict",
]
