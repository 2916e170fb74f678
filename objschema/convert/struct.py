"""Binary (struct) converter.

Wire format, all little-endian:

* fields in declared order, attributes first, then references
* integers and floats at their fixed width, booleans as one byte
* variable strings as a ``uint32`` byte length followed by UTF-8
* fixed strings as exactly ``size`` bytes, NUL padded
* fixed arrays as ``N`` consecutive elements
* container references as a ``uint32`` element count followed by the elements

There is no message length prefix, checksum or version tag.
"""

import struct as _struct
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cache
from typing import Any

from ..exceptions import ConversionError, UnsupportedTypeError
from ..schema.types import Category, TypeDescriptor, resolve
from .descriptor import ClassDescriptor, validate_class
from .values import parse_bool, parse_number

_INT_FORMATS = {1: "b", 2: "h", 4: "i", 8: "q"}
_FLOAT_FORMATS = {4: "f", 8: "d"}

_LENGTH = _struct.Struct("<I")

Buffer = bytes | bytearray | memoryview


def _truncated(name: str, offset: int) -> ConversionError:
    return ConversionError(
        f"Unexpected end of data while reading '{name}' at offset {offset}",
        reason="truncated",
    )


def _read_length(name: str, data: Buffer, offset: int) -> int:
    try:
        return _LENGTH.unpack_from(data, offset)[0]
    except _struct.error as exc:
        raise _truncated(name, offset) from exc


def _take(name: str, data: Buffer, offset: int, size: int) -> bytes:
    if offset + size > len(data):
        raise _truncated(name, offset)
    return bytes(data[offset : offset + size])


@dataclass(frozen=True)
class Codec:
    """Encoder/decoder for one binary type.

    ``size`` is the fixed encoded width in bytes, or ``None`` for variable width.
    """

    name: str
    size: int | None

    def pack(self, value: Any, buf: bytearray) -> None:
        raise NotImplementedError

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        """Decode a value at ``offset``; returns ``(value, bytes_consumed)``."""
        raise NotImplementedError

    def default(self) -> Any:
        raise NotImplementedError

    def encode(self, value: Any) -> bytes:
        buf = bytearray()
        self.pack(value, buf)
        return bytes(buf)


@dataclass(frozen=True)
class NumberCodec(Codec):
    fmt: str = "i"
    integer: bool = True

    def _coerce(self, value: Any) -> int | float:
        number = parse_number(value)
        if number is None:
            raise ConversionError(
                f"Invalid value '{value}' for '{self.name}', expected a number",
                reason="invalid value",
            )
        if self.integer:
            if isinstance(number, float) and not number.is_integer():
                raise ConversionError(
                    f"Invalid value '{value}' for '{self.name}', expected an integer",
                    reason="invalid value",
                )
            return int(number)
        return float(number)

    def pack(self, value: Any, buf: bytearray) -> None:
        try:
            buf.extend(_struct.pack(f"<{self.fmt}", self._coerce(value)))
        except (_struct.error, OverflowError) as exc:
            raise ConversionError(
                f"Value '{value}' does not fit '{self.name}'. {exc}", reason="out of range"
            ) from exc

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        try:
            value = _struct.unpack_from(f"<{self.fmt}", data, offset)[0]
        except _struct.error as exc:
            raise _truncated(self.name, offset) from exc
        return value, self.size

    def default(self) -> Any:
        return 0 if self.integer else 0.0


@dataclass(frozen=True)
class BoolCodec(Codec):
    def pack(self, value: Any, buf: bytearray) -> None:
        buf.append(1 if parse_bool(value) else 0)

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        return _take(self.name, data, offset, 1) != b"\x00", 1

    def default(self) -> Any:
        return False


@dataclass(frozen=True)
class StringCodec(Codec):
    def pack(self, value: Any, buf: bytearray) -> None:
        encoded = str(value).encode("utf-8")
        buf.extend(_LENGTH.pack(len(encoded)))
        buf.extend(encoded)

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        length = _read_length(self.name, data, offset)
        raw = _take(self.name, data, offset + _LENGTH.size, length)
        try:
            return raw.decode("utf-8"), _LENGTH.size + length
        except UnicodeDecodeError as exc:
            raise ConversionError(
                f"Invalid UTF-8 in '{self.name}' at offset {offset}", reason="invalid value"
            ) from exc

    def default(self) -> Any:
        return ""


@dataclass(frozen=True)
class FixedStringCodec(Codec):
    def pack(self, value: Any, buf: bytearray) -> None:
        size = self.size or 0
        encoded = str(value).encode("utf-8")
        if len(encoded) > size:
            raise ConversionError(
                f"Value for '{self.name}' is {len(encoded)} bytes, more than {size}",
                reason="out of range",
            )
        buf.extend(encoded.ljust(size, b"\x00"))

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        size = self.size or 0
        raw = _take(self.name, data, offset, size)
        try:
            return raw.rstrip(b"\x00").decode("utf-8"), size
        except UnicodeDecodeError as exc:
            raise ConversionError(
                f"Invalid UTF-8 in '{self.name}' at offset {offset}", reason="invalid value"
            ) from exc

    def default(self) -> Any:
        return ""


@dataclass(frozen=True)
class FixedArrayCodec(Codec):
    element: Codec = field(default_factory=lambda: NumberCodec("int32", 4))
    count: int = 0

    def pack(self, value: Any, buf: bytearray) -> None:
        if not isinstance(value, (list, tuple)) or len(value) != self.count:
            raise ConversionError(
                f"Value for '{self.name}' must be a list of {self.count} elements",
                reason="invalid value",
            )
        for v in value:
            self.element.pack(v, buf)

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        values = []
        o = offset
        for _ in range(self.count):
            v, n = self.element.unpack(data, o)
            values.append(v)
            o += n
        return values, o - offset

    def default(self) -> Any:
        return [self.element.default() for _ in range(self.count)]


@dataclass(frozen=True)
class Field:
    """A named, ordered entry of a layout."""

    name: str
    codec: Codec
    optional: bool = False


@dataclass(frozen=True, eq=False)
class Layout(Codec):
    """Ordered fields of an object class."""

    fields: tuple[Field, ...] = ()

    def pack(self, value: Any, buf: bytearray) -> None:
        if not isinstance(value, Mapping):
            raise ConversionError(
                f"Failed to encode '{self.name}', expected an object", reason="invalid object"
            )

        for f in self.fields:
            v = value.get(f.name)
            if v is None:
                if not f.optional:
                    raise ConversionError(
                        f"Failed to encode '{self.name}', non-optional property '{f.name}' "
                        "was not found",
                        reason="missing attribute",
                    )
                v = f.codec.default()
            f.codec.pack(v, buf)

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        obj: dict[str, Any] = {}
        o = offset
        for f in self.fields:
            obj[f.name], n = f.codec.unpack(data, o)
            o += n
        return obj, o - offset

    def default(self) -> Any:
        return {f.name: f.codec.default() for f in self.fields}


@dataclass(frozen=True, eq=False)
class ContainerCodec(Codec):
    """Count-prefixed sequence of objects of one class.

    The element layout is looked up on use so that a class may contain itself.
    """

    element_class: ClassDescriptor = field(default_factory=lambda: ClassDescriptor(None))

    @property
    def layout(self) -> Layout:
        return layout_for(self.element_class)

    def pack(self, value: Any, buf: bytearray) -> None:
        items = value if isinstance(value, (list, tuple)) else [value]
        buf.extend(_LENGTH.pack(len(items)))
        for item in items:
            self.layout.pack(item, buf)

    def unpack(self, data: Buffer, offset: int = 0) -> tuple[Any, int]:
        count = _read_length(self.name, data, offset)
        items = []
        o = offset + _LENGTH.size
        for _ in range(count):
            item, n = self.layout.unpack(data, o)
            items.append(item)
            o += n
        return items, o - offset

    def default(self) -> Any:
        return []


@cache
def binary_type_for(t: TypeDescriptor) -> Codec:
    """Choose the binary codec for a type.

    Raises:
        UnsupportedTypeError: If the category and size have no codec.
    """
    if t.category == Category.INTEGER:
        size = t.size if t.size is not None else 4
        if size not in _INT_FORMATS:
            raise UnsupportedTypeError(f"Unsupported integer size {size} for type '{t.name}'")
        fmt = _INT_FORMATS[size]
        return NumberCodec(t.name, size, fmt if t.signed else fmt.upper(), True)

    if t.category == Category.NUMERIC:
        size = t.size if t.size is not None else 8
        if size not in _FLOAT_FORMATS:
            raise UnsupportedTypeError(f"Unsupported numeric size {size} for type '{t.name}'")
        return NumberCodec(t.name, size, _FLOAT_FORMATS[size], False)

    if t.category == Category.BOOLEAN:
        return BoolCodec(t.name, 1)

    if t.category == Category.ALPHA:
        if t.size is None:
            return StringCodec(t.name, None)
        return FixedStringCodec(t.name, t.size)

    if t.element is not None and t.size:
        element = binary_type_for(resolve(t.element))
        size = element.size * t.size if element.size is not None else None
        return FixedArrayCodec(t.name, size, element, t.size)

    raise UnsupportedTypeError(f"Type '{t.name}' has no binary encoding")


_layouts: "weakref.WeakKeyDictionary[ClassDescriptor, Layout]" = weakref.WeakKeyDictionary()
_building: set[int] = set()


def layout_for(obj_class: ClassDescriptor) -> Layout:
    """Binary layout of an object class, built once per descriptor.

    Raises:
        UnsupportedTypeError: If an attribute has no codec or the class contains
            itself through a non-container reference.
    """
    layout = _layouts.get(obj_class)
    if layout is not None:
        return layout

    validate_class(obj_class)
    if id(obj_class) in _building:
        raise UnsupportedTypeError(
            f"Object class '{obj_class.name}' contains itself and has no finite layout"
        )

    _building.add(id(obj_class))
    try:
        fields: list[Field] = []
        for name, attr in obj_class.attrs.items():
            fields.append(Field(name, binary_type_for(attr.type), attr.optional))

        for name, ref in obj_class.refs.items():
            ref_class = obj_class.ref_class(name)
            if ref.is_container:
                fields.append(Field(name, ContainerCodec(name, None, ref_class), True))
            else:
                fields.append(Field(name, layout_for(ref_class)))
    finally:
        _building.discard(id(obj_class))

    sizes = [f.codec.size for f in fields]
    size = None if None in sizes else sum(s for s in sizes if s is not None)

    layout = Layout(str(obj_class.name), size, tuple(fields))
    _layouts[obj_class] = layout
    return layout


def from_obj(obj: Mapping[str, Any], obj_class: ClassDescriptor) -> bytes:
    """Encode an object.

    Raises:
        ConversionError: If a value is missing, out of range or of the wrong type.
    """
    buf = bytearray()
    layout_for(obj_class).pack(obj, buf)
    return bytes(buf)


def unpack(data: Buffer, obj_class: ClassDescriptor, offset: int = 0) -> tuple[dict[str, Any], int]:
    """Decode one object at ``offset``; returns ``(object, bytes_consumed)``."""
    return layout_for(obj_class).unpack(data, offset)


def to_obj(data: Buffer, obj_class: ClassDescriptor) -> dict[str, Any]:
    """Decode an object that spans all of ``data``.

    Raises:
        ConversionError: If the data is truncated, malformed or has trailing bytes.
    """
    obj, consumed = unpack(data, obj_class)
    if consumed != len(data):
        raise ConversionError(
            f"Failed to decode '{obj_class.name}', {len(data) - consumed} trailing byte(s)",
            reason="trailing data",
        )
    return obj
