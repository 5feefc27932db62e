"""Type resolution from syntactic TypeExprs to canonical IDL TypeRefs.

The resolver knows the fixed vocabulary of the translatable subset
(fixed-width scalars, text, tuples, Option, Result, the standard
collections and the capability traits) and the names of the module's own
type-like items. Everything else is rejected with a ResolutionFailure that
names the offending type and the reason.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable

from interlingua.extraction.declarations import RawParameter
from interlingua.extraction.type_syntax import TypeExpr, TypeExprKind
from interlingua.idl.model import (
    UNIT,
    Capability,
    CapabilityBoundType,
    CharacterType,
    CollectionKind,
    CollectionRepr,
    CollectionType,
    DiagnosticKind,
    ErrorRepr,
    ErrorType,
    OptionType,
    Ownership,
    Parameter,
    Primitive,
    PrimitiveType,
    RefKind,
    ResultType,
    Signature,
    TextRepr,
    TextType,
    TupleType,
    TypeRef,
    UserDefinedType,
)


class ResolutionFailure(Exception):
    """A single type site could not be resolved."""

    def __init__(self, kind: DiagnosticKind, reason: str) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason

    @classmethod
    def unsupported(cls, expr: TypeExpr, reason: str) -> ResolutionFailure:
        return cls(DiagnosticKind.UNSUPPORTED_TYPE, f"`{expr}`: {reason}")

    @classmethod
    def unresolved(cls, name: str, reason: str) -> ResolutionFailure:
        return cls(DiagnosticKind.UNRESOLVED_USER_TYPE, f"`{name}`: {reason}")


class TypePosition(StrEnum):
    """Where a type occurs; references and error objects depend on it."""

    PARAMETER = "parameter"
    RETURN = "return"
    FIELD = "field"
    ERROR = "error"


# Path prefixes under which the standard vocabulary is recognized
_STD_ROOTS = frozenset({"std", "core", "alloc"})

_PRIMITIVES = {p.value: p for p in Primitive}
_PLATFORM_WIDTH = frozenset({"isize", "usize"})
_TOO_WIDE = frozenset({"i128", "u128"})

_OWNED_TEXT = {
    "String": TextRepr.STRING,
    "PathBuf": TextRepr.PATH_BUF,
    "OsString": TextRepr.OS_STRING,
}
_UNSIZED_TEXT = {
    "str": TextRepr.STR,
    "Path": TextRepr.PATH,
    "OsStr": TextRepr.OS_STR,
}

_COLLECTIONS = {
    "Vec": (CollectionKind.VECTOR, CollectionRepr.VEC),
    "VecDeque": (CollectionKind.VECTOR, CollectionRepr.VEC_DEQUE),
    "HashSet": (CollectionKind.SET, CollectionRepr.HASH),
    "BTreeSet": (CollectionKind.SET, CollectionRepr.BTREE),
    "HashMap": (CollectionKind.MAP, CollectionRepr.HASH),
    "BTreeMap": (CollectionKind.MAP, CollectionRepr.BTREE),
}

_CAPABILITIES = {
    "MapLike": Capability.MAP_LIKE,
    "VecLike": Capability.VECTOR_LIKE,
    "SetLike": Capability.SET_LIKE,
}


def _is_std_path(expr: TypeExpr) -> bool:
    segments = expr.segments
    return len(segments) == 1 or segments[0] in _STD_ROOTS


def _opaque_error_repr(expr: TypeExpr) -> ErrorRepr | None:
    """Representation of ``anyhow::Error`` or ``Box<dyn Error ...>``; None for anything else."""
    if expr.kind is not TypeExprKind.PATH:
        return None
    if expr.name == "anyhow::Error" and not expr.args:
        return ErrorRepr.ANYHOW
    if expr.last_segment == "Box" and len(expr.args) == 1:
        inner = expr.args[0]
        if inner.kind is TypeExprKind.OTHER and inner.name.startswith("dyn "):
            trait = inner.name[4:].split("+")[0].strip()
            if trait.split("::")[-1] == "Error":
                return ErrorRepr.BOX_DYN_ERROR
    return None


class TypeResolver:
    """Resolves type expressions against the translatable vocabulary.

    Args:
        type_names: Names of classified type-like items of the module
        function_names: Names of classified functions (invalid as types)
        withheld_names: Names of items that will not be emitted
    """

    def __init__(
        self,
        type_names: Iterable[str] = (),
        function_names: Iterable[str] = (),
        withheld_names: Iterable[str] = (),
    ) -> None:
        self.type_names = frozenset(type_names)
        self.function_names = frozenset(function_names)
        self.withheld_names = frozenset(withheld_names)

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def resolve_parameter(self, param: RawParameter, self_type: str | None = None) -> Parameter:
        """Resolve a parameter type and derive its ownership and passing form."""
        expr = param.type

        if expr.kind is TypeExprKind.REFERENCE:
            inner = expr.inner
            if inner.kind is TypeExprKind.REFERENCE:
                raise ResolutionFailure.unsupported(expr, "nested references are not supported")
            return Parameter(
                param.name,
                self._resolve_borrowed(inner, self_type),
                Ownership.BORROWED,
                RefKind.MUT_REF if expr.mutable else RefKind.REF,
            )

        if expr.kind is TypeExprKind.IMPL and expr.last_segment in ("AsRef", "Into"):
            if len(expr.args) != 1:
                raise ResolutionFailure.unsupported(expr, f"{expr.last_segment} takes exactly one type")
            target = expr.args[0]
            if expr.last_segment == "AsRef":
                return Parameter(
                    param.name,
                    self._resolve_borrowed(target, self_type),
                    Ownership.BORROWED,
                    RefKind.IMPL_AS_REF,
                )
            return Parameter(
                param.name,
                self.resolve(target, TypePosition.PARAMETER, self_type),
                Ownership.OWNED,
                RefKind.IMPL_INTO,
            )

        return Parameter(param.name, self.resolve(expr, TypePosition.PARAMETER, self_type), Ownership.OWNED)

    def resolve_return(
        self, expr: TypeExpr | None, self_type: str | None = None
    ) -> tuple[TypeRef, bool, TypeRef | None]:
        """Resolve a return type.

        Returns:
            (returns, fallible, error); a top-level Result makes the
            signature fallible
        """
        if expr is None:
            return UNIT, False, None

        if expr.kind is TypeExprKind.REFERENCE:
            raise ResolutionFailure.unsupported(expr, "return types must be owned, not borrowed")

        if expr.kind is TypeExprKind.PATH and expr.last_segment == "Result":
            if _is_std_path(expr) or expr.name == "anyhow::Result":
                ok, err = self._result_arms(expr)
                returns = self.resolve(ok, TypePosition.RETURN, self_type)
                error = self.resolve(err, TypePosition.ERROR, self_type)
                return returns, True, error

        return self.resolve(expr, TypePosition.RETURN, self_type), False, None

    def resolve_signature(
        self,
        parameters: Iterable[RawParameter],
        returns: TypeExpr | None,
        is_async: bool = False,
        self_type: str | None = None,
    ) -> tuple[Signature | None, list[ResolutionFailure]]:
        """Resolve every type site of a signature, collecting all failures."""
        failures: list[ResolutionFailure] = []
        resolved: list[Parameter] = []
        for param in parameters:
            try:
                resolved.append(self.resolve_parameter(param, self_type))
            except ResolutionFailure as failure:
                failures.append(failure)

        result_type: TypeRef = UNIT
        fallible = False
        error: TypeRef | None = None
        try:
            result_type, fallible, error = self.resolve_return(returns, self_type)
        except ResolutionFailure as failure:
            failures.append(failure)

        if failures:
            return None, failures
        signature = Signature(
            parameters=tuple(resolved),
            returns=result_type,
            fallible=fallible,
            error=error,
            is_async=is_async,
        )
        return signature, []

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def _resolve_borrowed(self, expr: TypeExpr, self_type: str | None) -> TypeRef:
        """Resolve the referent of a borrowed parameter, where unsized types are allowed."""
        if expr.kind is TypeExprKind.SLICE:
            element = self.resolve(expr.inner, TypePosition.PARAMETER, self_type)
            return CollectionType(CollectionKind.VECTOR, (element,), CollectionRepr.SLICE)
        if expr.kind is TypeExprKind.PATH and expr.last_segment in _UNSIZED_TEXT and _is_std_path(expr):
            if expr.args:
                raise ResolutionFailure.unsupported(expr, "text types take no type arguments")
            return TextType(_UNSIZED_TEXT[expr.last_segment])
        return self.resolve(expr, TypePosition.PARAMETER, self_type)

    def resolve(
        self,
        expr: TypeExpr,
        position: TypePosition = TypePosition.FIELD,
        self_type: str | None = None,
    ) -> TypeRef:
        """Resolve a value type (no outermost reference) to a TypeRef."""
        kind = expr.kind

        if kind is TypeExprKind.REFERENCE:
            if position is TypePosition.RETURN:
                raise ResolutionFailure.unsupported(expr, "return types must be owned, not borrowed")
            raise ResolutionFailure.unsupported(
                expr, "references are only accepted at the outermost parameter level"
            )

        if kind is TypeExprKind.TUPLE:
            return TupleType(tuple(self.resolve(e, position, self_type) for e in expr.args))

        if kind is TypeExprKind.SLICE:
            raise ResolutionFailure.unsupported(expr, "unsized slices must be borrowed")

        if kind is TypeExprKind.IMPL:
            return self._resolve_impl(expr, position, self_type)

        if kind is TypeExprKind.OTHER:
            raise ResolutionFailure.unsupported(
                expr, "trait objects, function pointers and arrays are not translatable"
            )

        return self._resolve_path(expr, position, self_type)

    def _resolve_impl(self, expr: TypeExpr, position: TypePosition, self_type: str | None) -> TypeRef:
        trait = expr.last_segment
        capability = _CAPABILITIES.get(trait)
        if capability is None:
            if trait in ("AsRef", "Into"):
                raise ResolutionFailure.unsupported(
                    expr, f"impl {trait} is only accepted as a parameter type"
                )
            raise ResolutionFailure.unsupported(expr, f"trait bound '{trait}' is not translatable")
        if len(expr.args) != capability.arity:
            raise ResolutionFailure.unsupported(
                expr, f"{trait} takes {capability.arity} type argument(s), got {len(expr.args)}"
            )
        elements = tuple(self.resolve(a, position, self_type) for a in expr.args)
        return CapabilityBoundType(capability, elements)

    def _expect_args(self, expr: TypeExpr, count: int) -> tuple[TypeExpr, ...]:
        if len(expr.args) != count:
            raise ResolutionFailure.unsupported(
                expr, f"{expr.last_segment} takes {count} type argument(s), got {len(expr.args)}"
            )
        return expr.args

    def _result_arms(self, expr: TypeExpr) -> tuple[TypeExpr, TypeExpr]:
        if expr.name == "anyhow::Result" and len(expr.args) == 1:
            return expr.args[0], TypeExpr.path("anyhow::Error")
        ok, err = self._expect_args(expr, 2)
        return ok, err

    def _resolve_path(self, expr: TypeExpr, position: TypePosition, self_type: str | None) -> TypeRef:
        name = expr.last_segment

        error_repr = _opaque_error_repr(expr)
        if error_repr is not None:
            if position is not TypePosition.ERROR:
                raise ResolutionFailure.unsupported(
                    expr, "opaque error objects are only accepted as the error of a Result"
                )
            return ErrorType(error_repr)

        if name == "Self" and len(expr.segments) == 1:
            if self_type is None:
                raise ResolutionFailure.unsupported(expr, "Self is only meaningful inside a type")
            self._expect_args(expr, 0)
            return UserDefinedType(self_type)

        if _is_std_path(expr):
            resolved = self._resolve_std(expr, name, self_type)
            if resolved is not None:
                return resolved

        if expr.name == "anyhow::Result":
            ok, err = self._result_arms(expr)
            return ResultType(
                self.resolve(ok, position, self_type),
                self.resolve(err, TypePosition.ERROR, self_type),
            )

        return self._resolve_user(expr, name, self_type)

    def _resolve_std(self, expr: TypeExpr, name: str, self_type: str | None) -> TypeRef | None:
        if name in _PRIMITIVES:
            self._expect_args(expr, 0)
            return PrimitiveType(_PRIMITIVES[name])
        if name in _PLATFORM_WIDTH:
            raise ResolutionFailure.unsupported(expr, "platform-width integers have no fixed width")
        if name in _TOO_WIDE:
            raise ResolutionFailure.unsupported(expr, "integers wider than 64 bits are not supported")
        if name == "char":
            self._expect_args(expr, 0)
            return CharacterType()
        if name in _OWNED_TEXT:
            self._expect_args(expr, 0)
            return TextType(_OWNED_TEXT[name])
        if name in _UNSIZED_TEXT:
            raise ResolutionFailure.unsupported(expr, "unsized text must be borrowed")
        if name == "Option":
            (inner,) = self._expect_args(expr, 1)
            return OptionType(self.resolve(inner, TypePosition.FIELD, self_type))
        if name == "Result":
            ok, err = self._expect_args(expr, 2)
            return ResultType(
                self.resolve(ok, TypePosition.FIELD, self_type),
                self.resolve(err, TypePosition.ERROR, self_type),
            )
        if name in _COLLECTIONS:
            collection, repr_value = _COLLECTIONS[name]
            args = self._expect_args(expr, collection.arity)
            return CollectionType(
                collection,
                tuple(self.resolve(a, TypePosition.FIELD, self_type) for a in args),
                repr_value,
            )
        if name in ("Box", "Rc", "Arc", "RefCell", "Cell", "Mutex"):
            raise ResolutionFailure.unsupported(expr, f"smart pointer '{name}' is not translatable")
        return None

    def _resolve_user(self, expr: TypeExpr, name: str, self_type: str | None) -> TypeRef:
        if expr.args:
            raise ResolutionFailure.unsupported(expr, "generic user-defined types are not translatable")
        if name == self_type:
            return UserDefinedType(name)
        if name in self.withheld_names:
            raise ResolutionFailure.unresolved(name, "refers to an item that is withheld from the interface")
        if name in self.type_names:
            return UserDefinedType(name)
        if name in self.function_names:
            raise ResolutionFailure.unresolved(name, "names a function, not a type")
        raise ResolutionFailure.unresolved(name, "is not a public type of this module")
