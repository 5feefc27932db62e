"""
Phase 2 Tests: IDL Model

Tests for the IDL data model including:
- Type reference construction and dictionary forms
- Item helpers (simple variants, resources, re-exports)
- Diagnostics and document finalization
- Codec error handling
"""

import json

import pytest

from interlingua.idl import (
    UNIT,
    Capability,
    CapabilityBoundType,
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
    Signature,
    SourceLocation,
    TextRepr,
    TextType,
    UserDefinedType,
    Variant,
    VariantArm,
    decode_document,
    encode_document,
    type_from_dict,
)
from interlingua.idl.model import is_type_item, referenced_names
from interlingua.types import IdlBuildError, MalformedDocumentError

U32 = PrimitiveType(Primitive.U32)
F64 = PrimitiveType(Primitive.F64)


class TestPrimitives:
    """Tests for fixed-width primitive descriptors."""

    @pytest.mark.parametrize(
        "primitive, width, signed, is_float",
        [
            (Primitive.BOOL, 1, False, False),
            (Primitive.I8, 8, True, False),
            (Primitive.U16, 16, False, False),
            (Primitive.I64, 64, True, False),
            (Primitive.F32, 32, True, True),
            (Primitive.F64, 64, True, True),
        ],
    )
    def test_properties(self, primitive, width, signed, is_float):
        """Primitives expose width, signedness and float-ness."""
        assert primitive.width == width
        assert primitive.is_signed is signed
        assert primitive.is_float is is_float

    def test_unit_is_empty_tuple(self):
        """The unit type is the empty tuple."""
        assert UNIT.is_unit
        assert str(UNIT) == "()"


class TestTypeRefs:
    """Tests for type reference dictionary forms."""

    def test_nested_dict_form(self):
        """Nested types serialize with a kind tag at every level."""
        type_ref = OptionType(CollectionType(CollectionKind.MAP, (TextType(), U32)))
        data = type_ref.to_dict()
        assert data["kind"] == "option"
        assert data["element"]["kind"] == "collection"
        assert data["element"]["collection"] == "map"
        assert type_from_dict(data) == type_ref

    def test_capability_string(self):
        """Capability-bound types render their capability."""
        type_ref = CapabilityBoundType(Capability.MAP_LIKE, (TextType(), U32))
        assert str(type_ref) == "impl map-like<text, u32>"

    def test_arity_mismatch_rejected(self):
        """Collections must carry the right number of element types."""
        data = {"kind": "collection", "collection": "map", "elements": [U32.to_dict()]}
        with pytest.raises(ValueError, match="map"):
            type_from_dict(data)

    def test_unknown_kind_rejected(self):
        """Unknown kinds raise ValueError."""
        with pytest.raises(ValueError):
            type_from_dict({"kind": "pointer"})

    def test_origin_representation_dict_form(self):
        """Origin representations are written only when known."""
        assert TextType().to_dict() == {"kind": "text"}
        assert TextType(TextRepr.PATH_BUF).to_dict() == {"kind": "text", "repr": "PathBuf"}

        btree = CollectionType(CollectionKind.MAP, (TextType(TextRepr.STRING), U32), CollectionRepr.BTREE)
        assert btree.to_dict()["repr"] == "BTree"
        assert type_from_dict(btree.to_dict()) == btree
        assert btree != CollectionType(CollectionKind.MAP, btree.elements, CollectionRepr.HASH)

        boxed = ErrorType(ErrorRepr.BOX_DYN_ERROR)
        assert type_from_dict(boxed.to_dict()) == boxed

    def test_representation_must_fit_collection(self):
        """A slice representation cannot describe a map."""
        data = {
            "kind": "collection",
            "collection": "map",
            "elements": [U32.to_dict(), U32.to_dict()],
            "repr": "slice",
        }
        with pytest.raises(ValueError, match="does not fit"):
            type_from_dict(data)

    def test_parameter_ref_kind(self):
        """Parameters keep how the origin passes them."""
        param = Parameter("p", TextType(TextRepr.STR), Ownership.BORROWED, RefKind.IMPL_AS_REF)
        data = param.to_dict()
        assert data["ref_kind"] == "impl AsRef"
        assert Parameter.from_dict(data) == param
        assert "ref_kind" not in Parameter("q", U32).to_dict()

    def test_referenced_names(self):
        """User-defined names are collected through nesting."""
        type_ref = CollectionType(
            CollectionKind.VECTOR, (OptionType(UserDefinedType("Point")),)
        )
        assert referenced_names(type_ref) == {"Point"}
        assert referenced_names(U32) == set()


class TestItems:
    """Tests for item helpers."""

    def test_simple_variant(self):
        """A variant is simple when no arm carries fields."""
        color = Variant("Color", (VariantArm("Red"), VariantArm("Green")))
        assert color.simple is True
        assert color.to_dict()["simple"] is True

        shape = Variant(
            "Shape",
            (VariantArm("Circle", (Field("radius", F64),)), VariantArm("Empty")),
        )
        assert shape.simple is False

    def test_resource_methods_of_kind(self):
        """Resources can be queried by method kind."""
        counter = Resource(
            "Counter",
            constructor=Method("new", MethodKind.CONSTRUCTOR, Signature(returns=UserDefinedType("Counter"))),
            methods=(
                Method("increment", MethodKind.INSTANCE_MUTATING, Signature()),
                Method("get", MethodKind.INSTANCE_READONLY, Signature(returns=U32)),
            ),
        )
        assert [m.name for m in counter.methods_of_kind(MethodKind.INSTANCE_MUTATING)] == ["increment"]
        assert counter.methods_of_kind(MethodKind.BUILDER) == []
        # A resource naming itself is not a dependency
        assert counter.referenced_names() == set()

    def test_method_kind_receivers(self):
        """Only constructors and static methods have no receiver."""
        assert not MethodKind.CONSTRUCTOR.has_receiver
        assert not MethodKind.STATIC.has_receiver
        assert MethodKind.INSTANCE_CONSUMING.has_receiver
        assert MethodKind.BUILDER.has_receiver

    def test_reexport_type_flag(self):
        """Re-exports of types are types; re-exports of functions are not."""
        point = Record("Point", (Field("x", F64),))
        greet = Function("greet", Signature(returns=TextType()))
        assert ReExport("P", "crate::shapes::Point", point).is_type
        assert is_type_item(ReExport("P", "crate::shapes::Point", point))
        assert not is_type_item(ReExport("hello", "crate::greet", greet))

    def test_function_referenced_names(self):
        """Signatures report parameter, return and error references."""
        signature = Signature(
            parameters=(Parameter("p", UserDefinedType("Point"), Ownership.BORROWED),),
            returns=UserDefinedType("Area"),
            fallible=True,
            error=UserDefinedType("GeometryError"),
        )
        assert Function("area", signature).referenced_names() == {"Point", "Area", "GeometryError"}


class TestDiagnostics:
    """Tests for diagnostics."""

    def test_render_with_location_and_item(self):
        """Rendering includes location, kind and item."""
        diagnostic = Diagnostic(
            DiagnosticKind.UNSUPPORTED_TYPE,
            "`usize` has no fixed width",
            SourceLocation("src/lib.rs", 4, 9),
            item="len",
        )
        assert diagnostic.render() == "src/lib.rs:4:9: UnsupportedType [len]: `usize` has no fixed width"
        assert diagnostic.is_structural is False

    def test_render_without_location(self):
        """Diagnostics without a location render without a prefix."""
        diagnostic = Diagnostic(DiagnosticKind.DUPLICATE_NAME, "defined twice")
        assert diagnostic.render() == "DuplicateName: defined twice"
        assert diagnostic.is_structural is True

    def test_sort_key_orders_by_location(self):
        """Diagnostics sort by path, then line."""
        later = Diagnostic(DiagnosticKind.DUPLICATE_NAME, "x", SourceLocation("a.rs", 10))
        earlier = Diagnostic(DiagnosticKind.UNSUPPORTED_TYPE, "y", SourceLocation("a.rs", 2))
        unplaced = Diagnostic(DiagnosticKind.UNSUPPORTED_TYPE, "z")
        ordered = sorted([later, earlier, unplaced], key=Diagnostic.sort_key)
        assert ordered == [unplaced, earlier, later]


class TestDocument:
    """Tests for IdlDocument."""

    @pytest.fixture
    def document(self):
        return IdlDocument(
            schema_version=1,
            module_path="geometry",
            items=(
                Function("greet", Signature(returns=TextType())),
                Record("Point", (Field("x", F64), Field("y", F64))),
            ),
        )

    def test_lookup(self, document):
        """Items can be found by name and kind."""
        assert document.item("Point").kind is ItemKind.RECORD
        assert document.item("missing") is None
        assert [i.name for i in document.items_of_kind(ItemKind.FUNCTION)] == ["greet"]

    def test_require_clean(self, document):
        """Clean documents pass; documents with diagnostics raise."""
        assert document.require_clean() is document

        dirty = IdlDocument(
            1, "geometry", diagnostics=(Diagnostic(DiagnosticKind.DUPLICATE_NAME, "dup", item="A"),)
        )
        assert not dirty.is_clean
        with pytest.raises(IdlBuildError) as exc_info:
            dirty.require_clean()
        assert len(exc_info.value.errors) == 1

    def test_encode_is_deterministic(self, document):
        """Encoding the same document twice yields identical text."""
        assert encode_document(document) == encode_document(document)
        assert encode_document(document).endswith("\n")

    def test_decode_roundtrip(self, document):
        """Decoding encoded text reproduces the document."""
        assert decode_document(encode_document(document)) == document


class TestCodecErrors:
    """Tests for decode failures."""

    def test_not_json(self):
        """Invalid JSON raises MalformedDocumentError."""
        with pytest.raises(MalformedDocumentError, match="not valid JSON"):
            decode_document("{not json")

    def test_not_an_object(self):
        """Top-level arrays are rejected."""
        with pytest.raises(MalformedDocumentError, match="JSON object"):
            decode_document("[]")

    @pytest.mark.parametrize(
        "data",
        [
            {"module_path": "m", "items": []},
            {"schema_version": 1, "module_path": "m", "items": [{"kind": "macro", "name": "x"}]},
            {"schema_version": 1, "module_path": "m", "items": [{"kind": "function"}]},
            {"schema_version": "one", "module_path": "m", "items": []},
        ],
    )
    def test_bad_shapes(self, data):
        """Missing keys and unknown tags raise MalformedDocumentError."""
        with pytest.raises(MalformedDocumentError):
            decode_document(json.dumps(data))

    def test_bytes_accepted(self):
        """Documents may be decoded from UTF-8 bytes."""
        text = '{"schema_version": 1, "module_path": "m", "items": []}'
        assert decode_document(text.encode("utf-8")).module_path == "m"
