"""Reference backend: Python type stubs (.pyi) for an IDL document.

Installed as the ``interlingua-pystub`` executable. Capability-bound types
get their representation here, per call site: parameters accept the
abstract protocols (Mapping, Sequence, AbstractSet) so callers may pass
any conforming object, while returns and fields are the concrete builtins
(dict, list, set).

Options (``backends.pystub.options``):
    module_name: stub file name without extension (default: last module path segment)
"""

from __future__ import annotations

import sys

import click

from interlingua.backends.sdk import run_backend
from interlingua.dispatch.protocol import BackendRequest, GeneratedFile
from interlingua.idl.model import (
    Capability,
    CapabilityBoundType,
    CharacterType,
    CollectionKind,
    CollectionType,
    ErrorType,
    Field,
    Function,
    IdlDocument,
    Item,
    Method,
    MethodKind,
    OptionType,
    PrimitiveType,
    ReExport,
    Record,
    Resource,
    ResultType,
    Signature,
    TextType,
    TupleType,
    TypeRef,
    UserDefinedType,
    Variant,
)

_ABSTRACT = {
    Capability.MAP_LIKE: "Mapping",
    Capability.VECTOR_LIKE: "Sequence",
    Capability.SET_LIKE: "AbstractSet",
}
_CONCRETE = {
    Capability.MAP_LIKE: "dict",
    Capability.VECTOR_LIKE: "list",
    Capability.SET_LIKE: "set",
}
_COLLECTIONS = {
    CollectionKind.VECTOR: "list",
    CollectionKind.SET: "set",
    CollectionKind.MAP: "dict",
}
_INDENT = "    "


class StubWriter:
    """Renders one IDL document as a .pyi module."""

    def __init__(self, document: IdlDocument) -> None:
        self.document = document
        self.abstract_used: set[str] = set()
        self.needs_dataclass = False
        self.needs_enum = False

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def annotation(self, type_ref: TypeRef, parameter: bool = False) -> str:
        """Python annotation for a type; ``parameter`` selects abstract capabilities."""
        if isinstance(type_ref, PrimitiveType):
            if type_ref.primitive.value == "bool":
                return "bool"
            return "float" if type_ref.primitive.is_float else "int"
        if isinstance(type_ref, (CharacterType, TextType)):
            return "str"
        if isinstance(type_ref, TupleType):
            if type_ref.is_unit:
                return "None"
            return "tuple[" + ", ".join(self.annotation(e, parameter) for e in type_ref.elements) + "]"
        if isinstance(type_ref, OptionType):
            return f"{self.annotation(type_ref.element, parameter)} | None"
        if isinstance(type_ref, ResultType):
            return f"{self.annotation(type_ref.ok, parameter)} | {self.annotation(type_ref.err, parameter)}"
        if isinstance(type_ref, CollectionType):
            args = ", ".join(self.annotation(e, parameter) for e in type_ref.elements)
            return f"{_COLLECTIONS[type_ref.collection]}[{args}]"
        if isinstance(type_ref, CapabilityBoundType):
            args = ", ".join(self.annotation(e, parameter) for e in type_ref.elements)
            if parameter:
                name = _ABSTRACT[type_ref.capability]
                self.abstract_used.add(name)
            else:
                name = _CONCRETE[type_ref.capability]
            return f"{name}[{args}]"
        if isinstance(type_ref, UserDefinedType):
            return type_ref.name
        if isinstance(type_ref, ErrorType):
            return "Exception"
        raise TypeError(f"unknown type reference: {type_ref!r}")

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def signature(self, name: str, signature: Signature, receiver: str | None = None) -> str:
        params = [receiver] if receiver else []
        params += [f"{p.name}: {self.annotation(p.type, parameter=True)}" for p in signature.parameters]
        prefix = "async def" if signature.is_async else "def"
        line = f"{prefix} {name}({', '.join(params)}) -> {self.annotation(signature.returns)}: ..."
        if signature.fallible and signature.error is not None:
            line += f"  # raises {self.annotation(signature.error)}"
        return line

    def method(self, method: Method) -> list[str]:
        if method.kind is MethodKind.CONSTRUCTOR:
            init = Signature(method.signature.parameters, TupleType(()), method.signature.fallible,
                             method.signature.error, method.signature.is_async)
            return [self.signature("__init__", init, receiver="self")]
        if method.kind is MethodKind.STATIC:
            return ["@staticmethod", self.signature(method.name, method.signature)]
        return [self.signature(method.name, method.signature, receiver="self")]

    def fields(self, fields: tuple[Field, ...]) -> list[str]:
        return [f"{f.name}: {self.annotation(f.type)}" for f in fields]

    def class_body(self, lines: list[str], methods: tuple[Method, ...]) -> list[str]:
        body = list(lines)
        for method in methods:
            body.extend(self.method(method))
        return [_INDENT + line for line in body] if body else [_INDENT + "..."]

    def item(self, item: Item) -> list[str]:
        if isinstance(item, Function):
            return [self.signature(item.name, item.signature)]

        if isinstance(item, Record):
            self.needs_dataclass = True
            return ["@dataclass", f"class {item.name}:", *self.class_body(self.fields(item.fields), item.methods)]

        if isinstance(item, Variant):
            if item.simple:
                self.needs_enum = True
                arms = [f'{arm.name} = "{arm.name}"' for arm in item.arms]
                return [f"class {item.name}(Enum):", *self.class_body(arms, item.methods)]
            lines = [f"class {item.name}:", *self.class_body([], item.methods)]
            self.needs_dataclass = True
            for arm in item.arms:
                lines += ["", "@dataclass", f"class {item.name}{arm.name}({item.name}):"]
                lines += self.class_body(self.fields(arm.fields), ())
            return lines

        if isinstance(item, Resource):
            methods = ((item.constructor,) if item.constructor else ()) + item.methods
            return [f"class {item.name}:", *self.class_body([], methods)]

        if isinstance(item, ReExport):
            lines = self.item(item.item)
            if item.item.name != item.name:
                lines += ["", f"{item.name} = {item.item.name}"]
            return lines

        raise TypeError(f"unknown item: {item!r}")

    def render(self) -> str:
        blocks = ["\n".join(self.item(item)) for item in self.document.items]

        header = [
            f"# Generated by interlingua-pystub for {self.document.module_path} "
            f"(IDL schema {self.document.schema_version}). Do not edit.",
            "from __future__ import annotations",
            "",
        ]
        if self.abstract_used:
            imports = sorted(
                "Set as AbstractSet" if name == "AbstractSet" else name for name in self.abstract_used
            )
            header.append(f"from collections.abc import {', '.join(imports)}")
        if self.needs_dataclass:
            header.append("from dataclasses import dataclass")
        if self.needs_enum:
            header.append("from enum import Enum")

        return "\n".join(header).rstrip() + "\n\n\n" + "\n\n\n".join(blocks) + "\n"


def generate_stubs(request: BackendRequest) -> list[GeneratedFile]:
    """Backend entry: one .pyi file for the requested module."""
    module_name = request.config.get("module_name") or request.idl.module_path.split("::")[-1]
    content = StubWriter(request.idl).render()
    return [GeneratedFile(f"{module_name}.pyi", content)]


@click.command()
@click.option("--backend", "backend_id", default=None, help="Backend identifier (set by the driver)")
def main(backend_id: str | None) -> None:
    """Generate Python stubs from an IDL request on stdin."""
    sys.exit(run_backend(generate_stubs, backend_id=backend_id))


if __name__ == "__main__":
    main()
