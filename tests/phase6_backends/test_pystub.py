"""
Phase 6 Tests: Python Stub Backend

Tests for the reference backend including:
- Annotations for every type kind
- Rendering of each item kind
- The run_backend protocol loop
- End-to-end dispatch through a real process
"""

import ast
import io
import json

import pytest

from interlingua.backends import StubWriter, generate_stubs, run_backend
from interlingua.config import BackendSettings
from interlingua.dispatch import BackendDispatcher, BackendRequest, GeneratedFile, Manifest, PluginLocator
from interlingua.extraction import extract_module
from interlingua.idl import (
    UNIT,
    Capability,
    CapabilityBoundType,
    CharacterType,
    CollectionKind,
    CollectionType,
    ErrorType,
    Field,
    IdlDocument,
    Method,
    MethodKind,
    OptionType,
    Primitive,
    PrimitiveType,
    ReExport,
    Record,
    Resource,
    ResultType,
    Signature,
    TextType,
    TupleType,
    UserDefinedType,
    Variant,
    VariantArm,
)
from interlingua.types import MalformedDocumentError

U8 = PrimitiveType(Primitive.U8)


@pytest.fixture
def writer():
    return StubWriter(IdlDocument(1, "geometry"))


@pytest.fixture
def geometry_document(geometry_surface):
    return extract_module(geometry_surface)


class TestAnnotations:
    """Tests for type annotations."""

    @pytest.mark.parametrize(
        "type_ref, expected",
        [
            (PrimitiveType(Primitive.BOOL), "bool"),
            (PrimitiveType(Primitive.I64), "int"),
            (PrimitiveType(Primitive.F32), "float"),
            (CharacterType(), "str"),
            (TextType(), "str"),
            (UNIT, "None"),
            (TupleType((U8, TextType())), "tuple[int, str]"),
            (OptionType(UserDefinedType("Point")), "Point | None"),
            (ResultType(U8, TextType()), "int | str"),
            (CollectionType(CollectionKind.MAP, (TextType(), U8)), "dict[str, int]"),
            (ErrorType(), "Exception"),
        ],
    )
    def test_plain_types(self, writer, type_ref, expected):
        assert writer.annotation(type_ref) == expected

    @pytest.mark.parametrize(
        "capability, parameter_form, value_form",
        [
            (Capability.MAP_LIKE, "Mapping[str, int]", "dict[str, int]"),
            (Capability.VECTOR_LIKE, "Sequence[str]", "list[str]"),
            (Capability.SET_LIKE, "AbstractSet[str]", "set[str]"),
        ],
    )
    def test_capabilities_per_call_site(self, writer, capability, parameter_form, value_form):
        elements = (TextType(), U8) if capability is Capability.MAP_LIKE else (TextType(),)
        type_ref = CapabilityBoundType(capability, elements)
        assert writer.annotation(type_ref, parameter=True) == parameter_form
        assert writer.annotation(type_ref) == value_form


class TestRendering:
    """Tests for rendered stub modules."""

    def test_geometry_stub(self, geometry_document):
        text = StubWriter(geometry_document).render()
        ast.parse(text)
        assert text.startswith("# Generated by interlingua-pystub for geometry (IDL schema 1)")
        assert "from collections.abc import Mapping" in text
        assert "from dataclasses import dataclass" in text
        assert "from enum import Enum" in text
        assert "def greet(name: str) -> str: ..." in text
        assert "@dataclass\nclass Point:\n    x: float\n    y: float" in text
        assert "class Counter:\n    def __init__(self) -> None: ..." in text
        assert "    def increment(self) -> None: ..." in text
        assert "    def get(self) -> int: ..." in text
        assert 'class Color(Enum):\n    Red = "Red"\n    Green = "Green"' in text
        assert "def word_counts(counts: Mapping[str, int]) -> list[str]: ..." in text

    def test_imports_only_when_needed(self):
        text = StubWriter(IdlDocument(1, "empty")).render()
        ast.parse(text)
        assert "dataclass" not in text
        assert "Enum" not in text

    def test_data_variant(self):
        shape = Variant(
            "Shape",
            (VariantArm("Circle", (Field("radius", PrimitiveType(Primitive.F64)),)), VariantArm("Empty")),
        )
        text = StubWriter(IdlDocument(1, "m", (shape,))).render()
        ast.parse(text)
        assert "class Shape:\n    ..." in text
        assert "@dataclass\nclass ShapeCircle(Shape):\n    radius: float" in text
        assert "class ShapeEmpty(Shape):\n    ..." in text

    def test_fallible_async_and_static(self):
        client = Resource(
            "Client",
            constructor=Method(
                "connect",
                MethodKind.CONSTRUCTOR,
                Signature(returns=UserDefinedType("Client"), fallible=True, error=ErrorType()),
            ),
            methods=(
                Method("fetch", MethodKind.INSTANCE_READONLY, Signature(returns=TextType(), is_async=True)),
                Method("version", MethodKind.STATIC, Signature(returns=U8)),
            ),
        )
        text = StubWriter(IdlDocument(1, "m", (client,))).render()
        ast.parse(text)
        assert "def __init__(self) -> None: ...  # raises Exception" in text
        assert "async def fetch(self) -> str: ..." in text
        assert "    @staticmethod\n    def version() -> int: ..." in text

    def test_reexport_alias(self):
        point = Record("Point", (Field("x", U8),))
        text = StubWriter(IdlDocument(1, "m", (ReExport("Pt", "crate::shapes::Point", point),))).render()
        ast.parse(text)
        assert "class Point:" in text
        assert "Pt = Point" in text

    def test_module_name_option(self, geometry_document):
        (default,) = generate_stubs(BackendRequest("pystub", geometry_document, "/out"))
        assert default.path == "geometry.pyi"
        (named,) = generate_stubs(BackendRequest("pystub", geometry_document, "/out", {"module_name": "geo"}))
        assert named.path == "geo.pyi"


class TestRunBackend:
    """Tests for the backend protocol loop."""

    def run(self, generate, payload):
        stdout = io.StringIO()
        status = run_backend(generate, stdin=io.BytesIO(payload), stdout=stdout)
        return status, json.loads(stdout.getvalue())

    def test_success_writes_manifest(self, geometry_document):
        payload = BackendRequest("pystub", geometry_document, "/out").encode()
        status, response = self.run(generate_stubs, payload)
        assert status == 0
        assert [f["path"] for f in response["generated_files"]] == ["geometry.pyi"]

    def test_manifest_results_accepted(self, geometry_document):
        payload = BackendRequest("x", geometry_document, "/out").encode()
        status, response = self.run(lambda request: Manifest((GeneratedFile("a", "b"),)), payload)
        assert status == 0
        assert response == {"generated_files": [{"path": "a", "content": "b"}]}

    def test_bad_request_reports_error(self):
        status, response = self.run(generate_stubs, b"not json")
        assert status == 1
        assert response["origin"] == "backend"
        assert "invalid backend request" in response["message"]

    def test_generator_exception_reports_error(self, geometry_document):
        def explode(request):
            raise RuntimeError("template missing")

        payload = BackendRequest("x", geometry_document, "/out").encode()
        status, response = self.run(explode, payload)
        assert status == 1
        assert response["message"] == "RuntimeError: template missing"

    def test_interlingua_errors_use_their_message(self, geometry_document):
        def reject(request):
            raise MalformedDocumentError("unsupported item kind")

        payload = BackendRequest("x", geometry_document, "/out").encode()
        status, response = self.run(reject, payload)
        assert status == 1
        assert response["message"] == "unsupported item kind"

    def test_request_for_another_backend_refused(self, geometry_document):
        payload = BackendRequest("java", geometry_document, "/out").encode()
        stdout = io.StringIO()
        status = run_backend(generate_stubs, stdin=io.BytesIO(payload), stdout=stdout, backend_id="pystub")
        assert status == 1
        assert "addressed to backend 'java'" in json.loads(stdout.getvalue())["message"]

    def test_request_for_this_backend_accepted(self, geometry_document):
        payload = BackendRequest("pystub", geometry_document, "/out").encode()
        stdout = io.StringIO()
        status = run_backend(generate_stubs, stdin=io.BytesIO(payload), stdout=stdout, backend_id="pystub")
        assert status == 0


class TestEndToEnd:
    """Dispatch to the stub backend as a separate process."""

    def test_dispatch_pystub(self, tmp_path, geometry_document, pystub_command):
        dispatcher = BackendDispatcher(PluginLocator(command_template=pystub_command))
        backend = BackendSettings("pystub", tmp_path / "stubs", timeout_seconds=60, options={"module_name": "geo"})
        report = dispatcher.dispatch(geometry_document, [backend])

        outcome = report.outcome("pystub")
        assert outcome.succeeded, outcome.error and outcome.error.get_formatted_message()
        (stub,) = outcome.manifest.files
        assert stub.path == "geo.pyi"
        assert stub.content == StubWriter(geometry_document).render()
