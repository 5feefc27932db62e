"""Syntactic type expressions as delivered by the source scanner.

A TypeExpr is the unresolved shape of a type as written in the origin
source. The TypeResolver turns it into a canonical IDL TypeRef.

Scanners may hand over structured objects or plain text; text is parsed
here with a small recursive-descent parser over a regex tokenizer. Anything
outside the recognized grammar (function pointers, arrays, trait objects
with extra bounds) becomes an ``other`` expression carrying its text, which
the resolver rejects with a readable reason.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TypeExprKind(StrEnum):
    PATH = "path"
    REFERENCE = "reference"
    TUPLE = "tuple"
    SLICE = "slice"
    IMPL = "impl"
    OTHER = "other"


@dataclass(frozen=True)
class TypeExpr:
    """An unresolved type expression.

    Field use per kind:
        path:      ``name`` is the (possibly qualified) path, ``args`` the generic arguments
        reference: ``args`` holds the referent, ``mutable`` marks ``&mut``
        tuple:     ``args`` holds the elements
        slice:     ``args`` holds the element type
        impl:      ``name`` is the trait path, ``args`` its generic arguments
        other:     ``name`` is the verbatim source text
    """

    kind: TypeExprKind
    name: str = ""
    args: tuple[TypeExpr, ...] = ()
    mutable: bool = False

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def path(cls, name: str, *args: TypeExpr) -> TypeExpr:
        return cls(TypeExprKind.PATH, name, tuple(args))

    @classmethod
    def reference(cls, inner: TypeExpr, mutable: bool = False) -> TypeExpr:
        return cls(TypeExprKind.REFERENCE, args=(inner,), mutable=mutable)

    @classmethod
    def tuple_of(cls, *elements: TypeExpr) -> TypeExpr:
        return cls(TypeExprKind.TUPLE, args=tuple(elements))

    @classmethod
    def slice_of(cls, element: TypeExpr) -> TypeExpr:
        return cls(TypeExprKind.SLICE, args=(element,))

    @classmethod
    def impl(cls, trait: str, *args: TypeExpr) -> TypeExpr:
        return cls(TypeExprKind.IMPL, trait, tuple(args))

    @classmethod
    def other(cls, text: str) -> TypeExpr:
        return cls(TypeExprKind.OTHER, text.strip())

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def segments(self) -> list[str]:
        return self.name.split("::") if self.name else []

    @property
    def last_segment(self) -> str:
        segments = self.segments
        return segments[-1] if segments else ""

    @property
    def inner(self) -> TypeExpr:
        """Referent of a reference, element of a slice."""
        return self.args[0]

    def __str__(self) -> str:
        kind = self.kind
        if kind is TypeExprKind.REFERENCE:
            return ("&mut " if self.mutable else "&") + str(self.inner)
        if kind is TypeExprKind.TUPLE:
            if len(self.args) == 1:
                return f"({self.args[0]},)"
            return "(" + ", ".join(str(a) for a in self.args) + ")"
        if kind is TypeExprKind.SLICE:
            return f"[{self.inner}]"
        if kind is TypeExprKind.OTHER:
            return self.name
        generic = "<" + ", ".join(str(a) for a in self.args) + ">" if self.args else ""
        prefix = "impl " if kind is TypeExprKind.IMPL else ""
        return f"{prefix}{self.name}{generic}"

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": str(self.kind)}
        if self.name:
            data["name"] = self.name
        if self.args:
            data["args"] = [a.to_dict() for a in self.args]
        if self.mutable:
            data["mutable"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TypeExpr:
        return cls(
            kind=TypeExprKind(data["kind"]),
            name=data.get("name", ""),
            args=tuple(type_expr_from_json(a) for a in data.get("args", [])),
            mutable=bool(data.get("mutable", False)),
        )


def type_expr_from_json(value: str | dict[str, Any]) -> TypeExpr:
    """Accept a type given either as source text or as a structured object."""
    if isinstance(value, str):
        return parse_type_expr(value)
    return TypeExpr.from_dict(value)


# ============================================================================
# Text parser
# ============================================================================

_TOKEN_PATTERN = re.compile(
    r"\s*(?:(?P<lifetime>'[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<punct>::|->|[&<>,()\[\];+*!]))"
)


class TypeSyntaxError(ValueError):
    """Raised internally when text falls outside the recognized grammar."""


@dataclass
class _Token:
    kind: str
    text: str
    start: int
    end: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    stripped_end = len(text.rstrip())
    while pos < stripped_end:
        match = _TOKEN_PATTERN.match(text, pos)
        if not match or match.end() == pos:
            raise TypeSyntaxError(f"unexpected character {text[pos:].strip()[:1]!r}")
        kind = match.lastgroup or "punct"
        tokens.append(_Token(kind, match.group(kind), match.start(kind), match.end()))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self, offset: int = 0) -> _Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def at(self, text: str) -> bool:
        token = self.peek()
        return token is not None and token.text == text

    def take(self) -> _Token:
        token = self.peek()
        if token is None:
            raise TypeSyntaxError("unexpected end of type")
        self.pos += 1
        return token

    def expect(self, text: str) -> _Token:
        token = self.take()
        if token.text != text:
            raise TypeSyntaxError(f"expected {text!r}, found {token.text!r}")
        return token

    def parse(self) -> TypeExpr:
        expr = self.parse_type()
        if self.peek() is not None:
            raise TypeSyntaxError(f"unexpected {self.peek().text!r} after type")
        return expr

    def parse_type(self) -> TypeExpr:
        token = self.peek()
        if token is None:
            raise TypeSyntaxError("unexpected end of type")

        if token.text == "&":
            self.take()
            if self.peek() is not None and self.peek().kind == "lifetime":
                self.take()
            mutable = False
            if self.at("mut"):
                self.take()
                mutable = True
            return TypeExpr.reference(self.parse_type(), mutable=mutable)

        if token.text == "(":
            self.take()
            elements: list[TypeExpr] = []
            trailing_comma = False
            while not self.at(")"):
                elements.append(self.parse_type())
                trailing_comma = False
                if self.at(","):
                    self.take()
                    trailing_comma = True
                elif not self.at(")"):
                    raise TypeSyntaxError("expected ',' or ')' in tuple")
            self.expect(")")
            if len(elements) == 1 and not trailing_comma:
                return elements[0]
            return TypeExpr.tuple_of(*elements)

        if token.text == "[":
            self.take()
            element = self.parse_type()
            if self.at(";"):
                raise TypeSyntaxError("fixed-size arrays are not recognized")
            self.expect("]")
            return TypeExpr.slice_of(element)

        if token.text == "dyn":
            return self.parse_opaque()

        if token.text == "impl":
            self.take()
            name, args = self.parse_path()
            if self.at("+"):
                raise TypeSyntaxError("multiple trait bounds are not recognized")
            return TypeExpr.impl(name, *args)

        if token.kind == "ident" or token.text == "::":
            if token.text == "fn":
                raise TypeSyntaxError("function pointer types are not recognized")
            name, args = self.parse_path()
            return TypeExpr.path(name, *args)

        raise TypeSyntaxError(f"unexpected {token.text!r}")

    def parse_path(self) -> tuple[str, list[TypeExpr]]:
        segments: list[str] = []
        if self.at("::"):
            self.take()
        while True:
            token = self.take()
            if token.kind != "ident":
                raise TypeSyntaxError(f"expected identifier, found {token.text!r}")
            segments.append(token.text)
            if self.at("::") and self.peek(1) is not None and self.peek(1).kind == "ident":
                self.take()
                continue
            break

        args: list[TypeExpr] = []
        if self.at("<"):
            self.take()
            while not self.at(">"):
                if self.peek() is not None and self.peek().kind == "lifetime":
                    self.take()
                else:
                    args.append(self.parse_type())
                if self.at(","):
                    self.take()
                elif not self.at(">"):
                    raise TypeSyntaxError("expected ',' or '>' in generic arguments")
            self.expect(">")
        return "::".join(segments), args

    def parse_opaque(self) -> TypeExpr:
        """Consume a trait object up to the end of the enclosing argument."""
        start = self.peek().start
        end = start
        depth = 0
        while self.peek() is not None:
            token = self.peek()
            if token.text in ("<", "(", "["):
                depth += 1
            elif token.text in (">", ")", "]"):
                if depth == 0:
                    break
                depth -= 1
            elif token.text == "," and depth == 0:
                break
            end = token.end
            self.take()
        return TypeExpr.other(self.text[start:end])


def parse_type_expr(text: str) -> TypeExpr:
    """Parse source text such as ``HashMap<String, Vec<u32>>`` into a TypeExpr.

    Text outside the recognized grammar yields an ``other`` expression.
    """
    try:
        return _Parser(text).parse()
    except TypeSyntaxError:
        return TypeExpr.other(text)
