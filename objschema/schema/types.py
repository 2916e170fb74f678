"""Type catalog for schema members and message attributes.

Every type name a schema can use resolves to a :class:`TypeDescriptor` through
:func:`resolve`. Primitive names are looked up in a static table; anything else
is parsed as a type expression (``string[16]``, ``uint8[4]``, ``double?``).
"""

import dataclasses
import os
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from dataclasses_json import DataClassJsonMixin
from lark import Lark, Token
from lark.exceptions import LarkError, VisitError
from lark.visitors import Transformer

from ..exceptions import UnknownTypeError

if TYPE_CHECKING:
    from ..convert.struct import Codec

_g_parser: Lark | None = None


class Category(StrEnum):
    """Native representation of a type."""

    INTEGER = "Integer"
    NUMERIC = "Numeric"
    BOOLEAN = "Boolean"
    ALPHA = "Alpha"
    NODE = "Node"


@dataclass(frozen=True)
class TypeDescriptor(DataClassJsonMixin):
    """Describes a primitive, fixed-width or composite type.

    For Alpha types ``size=None`` means variable length; for Node types
    ``element`` names the element type of a fixed array.
    """

    name: str
    category: Category
    size: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    optional: bool = False
    element: str | None = None

    @property
    def signed(self) -> bool:
        return not (self.min_value is not None and self.min_value >= 0)

    @property
    def is_primitive(self) -> bool:
        return self.category != Category.NODE

    @property
    def codec(self) -> "Codec":
        """Binary codec used by the struct converter for this type."""
        from ..convert.struct import binary_type_for

        return binary_type_for(self)


def _int(name: str, size: int, unsigned: bool = False) -> TypeDescriptor:
    return TypeDescriptor(name, Category.INTEGER, size, 0 if unsigned else None)


def _node(name: str) -> TypeDescriptor:
    return TypeDescriptor(name, Category.NODE)


_TYPES: list[TypeDescriptor] = [
    _int("int8", 1),
    _int("int16", 2),
    _int("int32", 4),
    _int("int64", 8),
    _int("uint8", 1, unsigned=True),
    _int("uint16", 2, unsigned=True),
    _int("uint32", 4, unsigned=True),
    _int("uint64", 8, unsigned=True),
    # C-style aliases
    _int("byte", 1),
    _int("short", 2),
    _int("int", 4),
    _int("long", 8),
    _int("char", 1, unsigned=True),
    _int("word", 2, unsigned=True),
    _int("dword", 4, unsigned=True),
    _int("ulong", 8, unsigned=True),
    TypeDescriptor("float", Category.NUMERIC, 4),
    TypeDescriptor("double", Category.NUMERIC, 8),
    TypeDescriptor("bool", Category.BOOLEAN, 1),
    TypeDescriptor("string", Category.ALPHA),
    _node("struct"),
    _node("union"),
    _node("enum"),
    _node("array"),
    _node("namespace"),
    _node("interface"),
    _node("function"),
]

CATALOG: dict[str, TypeDescriptor] = {t.name: t for t in _TYPES}

INLINE_TYPES = frozenset(["struct", "union", "enum"])


def primitive_types() -> list[str]:
    """Return a list of primitive type names."""
    return [t.name for t in _TYPES if t.is_primitive]


def fixed_string(size: int, optional: bool = False) -> TypeDescriptor:
    """Fixed-width string of ``size`` bytes."""
    if size <= 0:
        raise UnknownTypeError(f"string[{size}]")
    return TypeDescriptor(f"string[{size}]", Category.ALPHA, size, optional=optional)


def fixed_array(element: str, size: int, optional: bool = False) -> TypeDescriptor:
    """Array of exactly ``size`` elements of the primitive type ``element``."""
    if size <= 0 or not is_primitive(element):
        raise UnknownTypeError(f"{element}[{size}]")
    return TypeDescriptor(
        f"{element}[{size}]", Category.NODE, size, optional=optional, element=element
    )


@dataclass
class _Size:
    value: int


class TypeSpecTransformer(Transformer):
    """Transform a type expression parse tree into a TypeDescriptor."""

    def size(self, args: list[Any]) -> _Size:
        return _Size(int(args[0]))

    def start(self, args: list[Any]) -> TypeDescriptor:
        name = str(args[0])
        sizes = [a for a in args if isinstance(a, _Size)]
        optional = any(isinstance(a, Token) and a.type == "OPTIONAL" for a in args)

        if sizes:
            if name == "string":
                return fixed_string(sizes[0].value, optional)
            return fixed_array(name, sizes[0].value, optional)

        if name not in CATALOG:
            raise UnknownTypeError(name)
        return dataclasses.replace(CATALOG[name], optional=optional)


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typespec.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar, parser="lalr")

    return _g_parser


_resolved: dict[str, TypeDescriptor] = {}


def resolve(name: str) -> TypeDescriptor:
    """Resolve a type name or type expression.

    Raises:
        UnknownTypeError: If the name is not registered or the expression is invalid.
    """
    if not isinstance(name, str):
        raise UnknownTypeError(repr(name))

    if name in CATALOG:
        return CATALOG[name]

    if name not in _resolved:
        try:
            tree = _parser().parse(name)
        except LarkError as exc:
            raise UnknownTypeError(name) from exc
        try:
            _resolved[name] = TypeSpecTransformer().transform(tree)
        except VisitError as exc:
            if isinstance(exc.orig_exc, UnknownTypeError):
                raise exc.orig_exc from None
            raise UnknownTypeError(name) from exc

    return _resolved[name]


def _lookup(name: Any) -> TypeDescriptor | None:
    try:
        return resolve(name)
    except UnknownTypeError:
        return None


def is_native(name: str) -> bool:
    """Check if a name resolves to a catalog type."""
    return _lookup(name) is not None


def is_primitive(name: str) -> bool:
    """Check if a type is an Integer, Numeric, Boolean or Alpha type."""
    t = _lookup(name)
    return t is not None and t.is_primitive


def is_numeric(name: str) -> bool:
    t = _lookup(name)
    return t is not None and t.category in (Category.INTEGER, Category.NUMERIC)


def is_integer(name: str) -> bool:
    t = _lookup(name)
    return t is not None and t.category == Category.INTEGER


def is_float(name: str) -> bool:
    t = _lookup(name)
    return t is not None and t.category == Category.NUMERIC


def is_inline(name: str) -> bool:
    """Inline types fold their members into the enclosing scope."""
    return name in INLINE_TYPES
