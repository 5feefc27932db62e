"""IDL data model: the language-neutral description of a module's public surface.

These types are the single contract between the extractor and every backend.
All nodes are frozen dataclasses holding tuples, so a finished IdlDocument is
immutable and can be shared read-only by concurrently running backends.

Every node converts to and from plain dictionaries; ``from_dict(to_dict(x))``
returns an equal node, which the JSON codec in ``interlingua.idl.codec``
relies on for its round-trip guarantee.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Union

from interlingua.types.errors import IdlBuildError, MalformedDocumentError

# ============================================================================
# Type references
# ============================================================================


class TypeKind(StrEnum):
    """Tags of the TypeRef union."""

    PRIMITIVE = "primitive"
    CHARACTER = "character"
    TEXT = "text"
    TUPLE = "tuple"
    OPTION = "option"
    RESULT = "result"
    COLLECTION = "collection"
    CAPABILITY_BOUND = "capability_bound"
    USER_DEFINED = "user_defined"
    ERROR = "error"


class Primitive(StrEnum):
    """Fixed-width scalars, named by their origin-language spelling."""

    BOOL = "bool"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"

    @property
    def width(self) -> int:
        """Width in bits."""
        return _PRIMITIVE_WIDTHS[self]

    @property
    def is_float(self) -> bool:
        return self in (Primitive.F32, Primitive.F64)

    @property
    def is_signed(self) -> bool:
        return self.value.startswith(("i", "f"))


_PRIMITIVE_WIDTHS = {
    Primitive.BOOL: 1,
    Primitive.I8: 8,
    Primitive.I16: 16,
    Primitive.I32: 32,
    Primitive.I64: 64,
    Primitive.U8: 8,
    Primitive.U16: 16,
    Primitive.U32: 32,
    Primitive.U64: 64,
    Primitive.F32: 32,
    Primitive.F64: 64,
}


class CollectionKind(StrEnum):
    """Concrete owned collections."""

    VECTOR = "vector"
    SET = "set"
    MAP = "map"

    @property
    def arity(self) -> int:
        return 2 if self is CollectionKind.MAP else 1


class Capability(StrEnum):
    """Operation sets a capability-bound type promises."""

    MAP_LIKE = "map-like"
    VECTOR_LIKE = "vector-like"
    SET_LIKE = "set-like"

    @property
    def arity(self) -> int:
        return 2 if self is Capability.MAP_LIKE else 1


# Origin representations: how a type was spelled in the origin source. They
# never change what a type means; backends that emit origin-side glue code
# use them to rebuild the exact origin type.


class TextRepr(StrEnum):
    STRING = "String"
    STR = "str"
    PATH_BUF = "PathBuf"
    PATH = "Path"
    OS_STRING = "OsString"
    OS_STR = "OsStr"

    @property
    def is_unsized(self) -> bool:
        return self in (TextRepr.STR, TextRepr.PATH, TextRepr.OS_STR)


class CollectionRepr(StrEnum):
    VEC = "Vec"
    VEC_DEQUE = "VecDeque"
    SLICE = "slice"
    HASH = "Hash"
    BTREE = "BTree"

    def fits(self, collection: CollectionKind) -> bool:
        if collection is CollectionKind.VECTOR:
            return self in (CollectionRepr.VEC, CollectionRepr.VEC_DEQUE, CollectionRepr.SLICE)
        return self in (CollectionRepr.HASH, CollectionRepr.BTREE)


class ErrorRepr(StrEnum):
    ANYHOW = "anyhow::Error"
    BOX_DYN_ERROR = "Box<dyn Error>"


class RefKind(StrEnum):
    """How a parameter is passed when it is not a plain owned value."""

    REF = "&"
    MUT_REF = "&mut"
    IMPL_AS_REF = "impl AsRef"
    IMPL_INTO = "impl Into"


def _with_repr(data: dict[str, Any], repr_value: StrEnum | None) -> dict[str, Any]:
    if repr_value is not None:
        data["repr"] = str(repr_value)
    return data


@dataclass(frozen=True)
class PrimitiveType:
    primitive: Primitive

    kind: ClassVar[TypeKind] = TypeKind.PRIMITIVE

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "primitive": str(self.primitive)}

    def __str__(self) -> str:
        return str(self.primitive)


@dataclass(frozen=True)
class CharacterType:
    kind: ClassVar[TypeKind] = TypeKind.CHARACTER

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind)}

    def __str__(self) -> str:
        return "char"


@dataclass(frozen=True)
class TextType:
    repr: TextRepr | None = None

    kind: ClassVar[TypeKind] = TypeKind.TEXT

    def to_dict(self) -> dict[str, Any]:
        return _with_repr({"kind": str(self.kind)}, self.repr)

    def __str__(self) -> str:
        return "text"


@dataclass(frozen=True)
class TupleType:
    """A tuple of element types. The empty tuple is the unit type."""

    elements: tuple["TypeRef", ...] = ()

    kind: ClassVar[TypeKind] = TypeKind.TUPLE

    @property
    def is_unit(self) -> bool:
        return not self.elements

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "elements": [e.to_dict() for e in self.elements]}

    def __str__(self) -> str:
        return "(" + ", ".join(str(e) for e in self.elements) + ")"


@dataclass(frozen=True)
class OptionType:
    element: "TypeRef"

    kind: ClassVar[TypeKind] = TypeKind.OPTION

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "element": self.element.to_dict()}

    def __str__(self) -> str:
        return f"option<{self.element}>"


@dataclass(frozen=True)
class ResultType:
    """A Result nested inside another type (top-level Results become fallible signatures)."""

    ok: "TypeRef"
    err: "TypeRef"

    kind: ClassVar[TypeKind] = TypeKind.RESULT

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "ok": self.ok.to_dict(), "err": self.err.to_dict()}

    def __str__(self) -> str:
        return f"result<{self.ok}, {self.err}>"


@dataclass(frozen=True)
class CollectionType:
    collection: CollectionKind
    elements: tuple["TypeRef", ...]
    repr: CollectionRepr | None = None

    kind: ClassVar[TypeKind] = TypeKind.COLLECTION

    def to_dict(self) -> dict[str, Any]:
        data = {
            "kind": str(self.kind),
            "collection": str(self.collection),
            "elements": [e.to_dict() for e in self.elements],
        }
        return _with_repr(data, self.repr)

    def __str__(self) -> str:
        return f"{self.collection}<" + ", ".join(str(e) for e in self.elements) + ">"


@dataclass(frozen=True)
class CapabilityBoundType:
    """A type known only by the operations it supports.

    Deliberately carries no concrete representation: each backend picks its
    own native type per call site.
    """

    capability: Capability
    elements: tuple["TypeRef", ...]

    kind: ClassVar[TypeKind] = TypeKind.CAPABILITY_BOUND

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "capability": str(self.capability),
            "elements": [e.to_dict() for e in self.elements],
        }

    def __str__(self) -> str:
        return f"impl {self.capability}<" + ", ".join(str(e) for e in self.elements) + ">"


@dataclass(frozen=True)
class UserDefinedType:
    """Reference to another Item of the same module, by name."""

    name: str

    kind: ClassVar[TypeKind] = TypeKind.USER_DEFINED

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "name": self.name}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ErrorType:
    """Opaque error object; only appears as the error side of a fallible signature."""

    repr: ErrorRepr | None = None

    kind: ClassVar[TypeKind] = TypeKind.ERROR

    def to_dict(self) -> dict[str, Any]:
        return _with_repr({"kind": str(self.kind)}, self.repr)

    def __str__(self) -> str:
        return "error"


TypeRef = Union[
    PrimitiveType,
    CharacterType,
    TextType,
    TupleType,
    OptionType,
    ResultType,
    CollectionType,
    CapabilityBoundType,
    UserDefinedType,
    ErrorType,
]

UNIT = TupleType(())


def _repr_from(enum_type: type[StrEnum], data: dict[str, Any]) -> Any:
    value = data.get("repr")
    return enum_type(value) if value is not None else None


def type_from_dict(data: dict[str, Any]) -> TypeRef:
    """Rebuild a TypeRef from its dictionary form."""
    kind = TypeKind(data["kind"])
    if kind is TypeKind.PRIMITIVE:
        return PrimitiveType(Primitive(data["primitive"]))
    if kind is TypeKind.CHARACTER:
        return CharacterType()
    if kind is TypeKind.TEXT:
        return TextType(_repr_from(TextRepr, data))
    if kind is TypeKind.TUPLE:
        return TupleType(tuple(type_from_dict(e) for e in data["elements"]))
    if kind is TypeKind.OPTION:
        return OptionType(type_from_dict(data["element"]))
    if kind is TypeKind.RESULT:
        return ResultType(type_from_dict(data["ok"]), type_from_dict(data["err"]))
    if kind is TypeKind.COLLECTION:
        collection = CollectionKind(data["collection"])
        elements = tuple(type_from_dict(e) for e in data["elements"])
        if len(elements) != collection.arity:
            raise ValueError(f"{collection} expects {collection.arity} element type(s)")
        repr_value = _repr_from(CollectionRepr, data)
        if repr_value is not None and not repr_value.fits(collection):
            raise ValueError(f"representation {repr_value} does not fit a {collection}")
        return CollectionType(collection, elements, repr_value)
    if kind is TypeKind.CAPABILITY_BOUND:
        capability = Capability(data["capability"])
        elements = tuple(type_from_dict(e) for e in data["elements"])
        if len(elements) != capability.arity:
            raise ValueError(f"{capability} expects {capability.arity} element type(s)")
        return CapabilityBoundType(capability, elements)
    if kind is TypeKind.USER_DEFINED:
        return UserDefinedType(data["name"])
    return ErrorType(_repr_from(ErrorRepr, data))


def referenced_names(type_ref: TypeRef) -> set[str]:
    """Names of all user-defined items reachable from a type."""
    if isinstance(type_ref, UserDefinedType):
        return {type_ref.name}
    if isinstance(type_ref, (TupleType, CollectionType, CapabilityBoundType)):
        names: set[str] = set()
        for element in type_ref.elements:
            names |= referenced_names(element)
        return names
    if isinstance(type_ref, OptionType):
        return referenced_names(type_ref.element)
    if isinstance(type_ref, ResultType):
        return referenced_names(type_ref.ok) | referenced_names(type_ref.err)
    return set()


# ============================================================================
# Locations and signatures
# ============================================================================


@dataclass(frozen=True, order=True)
class SourceLocation:
    """Position of a declaration in the origin source (1-indexed)."""

    path: str
    line: int = 0
    column: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SourceLocation | None:
        if data is None:
            return None
        return cls(path=data["path"], line=data.get("line", 0), column=data.get("column", 0))

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


def _location_dict(location: SourceLocation | None) -> dict[str, Any] | None:
    return location.to_dict() if location else None


class Ownership(StrEnum):
    """How a parameter crosses the call boundary."""

    BORROWED = "borrowed"  # a view valid only for the duration of the call
    OWNED = "owned"  # a value the callee may retain


@dataclass(frozen=True)
class Parameter:
    """A named parameter.

    ``ref_kind`` records how the origin passes it (``&T``, ``impl AsRef<T>``
    and so on); None means a plain owned value.
    """

    name: str
    type: TypeRef
    ownership: Ownership = Ownership.OWNED
    ref_kind: RefKind | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"name": self.name, "type": self.type.to_dict(), "ownership": str(self.ownership)}
        if self.ref_kind is not None:
            data["ref_kind"] = str(self.ref_kind)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Parameter:
        ref_kind = data.get("ref_kind")
        return cls(
            name=data["name"],
            type=type_from_dict(data["type"]),
            ownership=Ownership(data["ownership"]),
            ref_kind=RefKind(ref_kind) if ref_kind is not None else None,
        )


@dataclass(frozen=True)
class Signature:
    """Signature of a function or method, excluding any receiver.

    The return type is always owned. A fallible signature returns ``returns``
    on success and raises ``error`` on failure.
    """

    parameters: tuple[Parameter, ...] = ()
    returns: TypeRef = UNIT
    fallible: bool = False
    error: TypeRef | None = None
    is_async: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "returns": self.returns.to_dict(),
            "fallible": self.fallible,
            "error": self.error.to_dict() if self.error else None,
            "is_async": self.is_async,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signature:
        error = data.get("error")
        return cls(
            parameters=tuple(Parameter.from_dict(p) for p in data["parameters"]),
            returns=type_from_dict(data["returns"]),
            fallible=bool(data["fallible"]),
            error=type_from_dict(error) if error else None,
            is_async=bool(data.get("is_async", False)),
        )

    def referenced_names(self) -> set[str]:
        names = referenced_names(self.returns)
        if self.error:
            names |= referenced_names(self.error)
        for param in self.parameters:
            names |= referenced_names(param.type)
        return names


# ============================================================================
# Items
# ============================================================================


class ItemKind(StrEnum):
    """Tags of the Item union."""

    FUNCTION = "function"
    RECORD = "record"
    VARIANT = "variant"
    RESOURCE = "resource"
    REEXPORT = "reexport"


class MethodKind(StrEnum):
    """Categories of associated operations."""

    CONSTRUCTOR = "constructor"
    INSTANCE_MUTATING = "instance-mutating"
    INSTANCE_READONLY = "instance-readonly"
    INSTANCE_CONSUMING = "instance-consuming"
    BUILDER = "builder"
    STATIC = "static"

    @property
    def has_receiver(self) -> bool:
        return self not in (MethodKind.CONSTRUCTOR, MethodKind.STATIC)


@dataclass(frozen=True)
class Field:
    name: str
    type: TypeRef
    location: SourceLocation | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type.to_dict(), "location": _location_dict(self.location)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Field:
        return cls(
            name=data["name"],
            type=type_from_dict(data["type"]),
            location=SourceLocation.from_dict(data.get("location")),
        )


@dataclass(frozen=True)
class Method:
    name: str
    kind: MethodKind
    signature: Signature
    location: SourceLocation | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": str(self.kind),
            "signature": self.signature.to_dict(),
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Method:
        return cls(
            name=data["name"],
            kind=MethodKind(data["kind"]),
            signature=Signature.from_dict(data["signature"]),
            location=SourceLocation.from_dict(data.get("location")),
        )


def _methods_referenced_names(methods: tuple[Method, ...]) -> set[str]:
    names: set[str] = set()
    for method in methods:
        names |= method.signature.referenced_names()
    return names


@dataclass(frozen=True)
class Function:
    """A standalone callable."""

    name: str
    signature: Signature
    location: SourceLocation | None = None

    kind: ClassVar[ItemKind] = ItemKind.FUNCTION

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "name": self.name,
            "signature": self.signature.to_dict(),
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Function:
        return cls(
            name=data["name"],
            signature=Signature.from_dict(data["signature"]),
            location=SourceLocation.from_dict(data.get("location")),
        )

    def referenced_names(self) -> set[str]:
        return self.signature.referenced_names()


@dataclass(frozen=True)
class Record:
    """A plain data aggregate with a fixed, all-public set of fields."""

    name: str
    fields: tuple[Field, ...]
    methods: tuple[Method, ...] = ()
    location: SourceLocation | None = None

    kind: ClassVar[ItemKind] = ItemKind.RECORD

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "methods": [m.to_dict() for m in self.methods],
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        return cls(
            name=data["name"],
            fields=tuple(Field.from_dict(f) for f in data["fields"]),
            methods=tuple(Method.from_dict(m) for m in data.get("methods", [])),
            location=SourceLocation.from_dict(data.get("location")),
        )

    def referenced_names(self) -> set[str]:
        names = _methods_referenced_names(self.methods)
        for f in self.fields:
            names |= referenced_names(f.type)
        return names


@dataclass(frozen=True)
class VariantArm:
    name: str
    fields: tuple[Field, ...] = ()
    location: SourceLocation | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VariantArm:
        return cls(
            name=data["name"],
            fields=tuple(Field.from_dict(f) for f in data.get("fields", [])),
            location=SourceLocation.from_dict(data.get("location")),
        )


@dataclass(frozen=True)
class Variant:
    """A tagged choice between arms. Simple when no arm carries data."""

    name: str
    arms: tuple[VariantArm, ...]
    methods: tuple[Method, ...] = ()
    location: SourceLocation | None = None

    kind: ClassVar[ItemKind] = ItemKind.VARIANT

    @property
    def simple(self) -> bool:
        return all(not arm.fields for arm in self.arms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "name": self.name,
            "simple": self.simple,
            "arms": [a.to_dict() for a in self.arms],
            "methods": [m.to_dict() for m in self.methods],
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Variant:
        return cls(
            name=data["name"],
            arms=tuple(VariantArm.from_dict(a) for a in data["arms"]),
            methods=tuple(Method.from_dict(m) for m in data.get("methods", [])),
            location=SourceLocation.from_dict(data.get("location")),
        )

    def referenced_names(self) -> set[str]:
        names = _methods_referenced_names(self.methods)
        for arm in self.arms:
            for f in arm.fields:
                names |= referenced_names(f.type)
        return names


@dataclass(frozen=True)
class Resource:
    """An opaque, class-like handle with associated operations."""

    name: str
    constructor: Method | None = None
    methods: tuple[Method, ...] = ()
    location: SourceLocation | None = None

    kind: ClassVar[ItemKind] = ItemKind.RESOURCE

    def methods_of_kind(self, kind: MethodKind) -> list[Method]:
        return [m for m in self.methods if m.kind is kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "name": self.name,
            "constructor": self.constructor.to_dict() if self.constructor else None,
            "methods": [m.to_dict() for m in self.methods],
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Resource:
        constructor = data.get("constructor")
        return cls(
            name=data["name"],
            constructor=Method.from_dict(constructor) if constructor else None,
            methods=tuple(Method.from_dict(m) for m in data.get("methods", [])),
            location=SourceLocation.from_dict(data.get("location")),
        )

    def referenced_names(self) -> set[str]:
        methods = self.methods + ((self.constructor,) if self.constructor else ())
        return _methods_referenced_names(methods) - {self.name}


@dataclass(frozen=True)
class ReExport:
    """A public alias for a declaration defined elsewhere in the library."""

    name: str
    target: str
    item: "Item"
    location: SourceLocation | None = None

    kind: ClassVar[ItemKind] = ItemKind.REEXPORT

    @property
    def is_type(self) -> bool:
        return is_type_item(self.item)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "name": self.name,
            "target": self.target,
            "item": self.item.to_dict(),
            "location": _location_dict(self.location),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReExport:
        return cls(
            name=data["name"],
            target=data["target"],
            item=item_from_dict(data["item"]),
            location=SourceLocation.from_dict(data.get("location")),
        )

    def referenced_names(self) -> set[str]:
        return self.item.referenced_names() - {self.item.name}


Item = Union[Function, Record, Variant, Resource, ReExport]

_ITEM_TYPES: dict[ItemKind, Any] = {
    ItemKind.FUNCTION: Function,
    ItemKind.RECORD: Record,
    ItemKind.VARIANT: Variant,
    ItemKind.RESOURCE: Resource,
    ItemKind.REEXPORT: ReExport,
}


def item_from_dict(data: dict[str, Any]) -> Item:
    """Rebuild an Item from its dictionary form."""
    return _ITEM_TYPES[ItemKind(data["kind"])].from_dict(data)


def is_type_item(item: Item) -> bool:
    """Whether an item can be named as a type (everything but functions)."""
    if isinstance(item, ReExport):
        return item.is_type
    return not isinstance(item, Function)


# ============================================================================
# Diagnostics
# ============================================================================


class DiagnosticKind(StrEnum):
    """Problems reported during extraction."""

    # Structural
    AMBIGUOUS_VISIBILITY = "AmbiguousVisibility"
    MULTIPLE_CONSTRUCTORS = "MultipleConstructors"
    UNSUPPORTED_PUBLIC_ITEM = "UnsupportedPublicItem"
    DUPLICATE_NAME = "DuplicateName"

    # Type resolution
    UNSUPPORTED_TYPE = "UnsupportedType"
    UNRESOLVED_USER_TYPE = "UnresolvedUserType"


_STRUCTURAL_KINDS = frozenset(
    {
        DiagnosticKind.AMBIGUOUS_VISIBILITY,
        DiagnosticKind.MULTIPLE_CONSTRUCTORS,
        DiagnosticKind.UNSUPPORTED_PUBLIC_ITEM,
        DiagnosticKind.DUPLICATE_NAME,
    }
)


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    location: SourceLocation | None = None
    item: str | None = None

    @property
    def is_structural(self) -> bool:
        return self.kind in _STRUCTURAL_KINDS

    def sort_key(self) -> tuple[Any, ...]:
        loc = self.location
        return (
            loc.path if loc else "",
            loc.line if loc else 0,
            loc.column if loc else 0,
            str(self.kind),
            self.item or "",
            self.message,
        )

    def render(self) -> str:
        """One-line human-readable form: ``path:line:col: Kind: message``."""
        prefix = f"{self.location}: " if self.location else ""
        subject = f" [{self.item}]" if self.item else ""
        return f"{prefix}{self.kind}{subject}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "message": self.message,
            "location": _location_dict(self.location),
            "item": self.item,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Diagnostic:
        return cls(
            kind=DiagnosticKind(data["kind"]),
            message=data["message"],
            location=SourceLocation.from_dict(data.get("location")),
            item=data.get("item"),
        )


# ============================================================================
# Document
# ============================================================================


@dataclass(frozen=True)
class IdlDocument:
    """The complete, versioned interface description of one module."""

    schema_version: int
    module_path: str
    items: tuple[Item, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.diagnostics

    def item(self, name: str) -> Item | None:
        for item in self.items:
            if item.name == name:
                return item
        return None

    def items_of_kind(self, kind: ItemKind) -> list[Item]:
        return [i for i in self.items if i.kind is kind]

    def require_clean(self) -> IdlDocument:
        """Return self, or raise IdlBuildError if any diagnostic was recorded."""
        if self.diagnostics:
            raise IdlBuildError.from_diagnostics(self.diagnostics)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "module_path": self.module_path,
            "items": [i.to_dict() for i in self.items],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IdlDocument:
        try:
            return cls(
                schema_version=int(data["schema_version"]),
                module_path=data["module_path"],
                items=tuple(item_from_dict(i) for i in data["items"]),
                diagnostics=tuple(Diagnostic.from_dict(d) for d in data.get("diagnostics", [])),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedDocumentError(f"invalid IDL document: {e!r}", original_error=e) from e
