"""Object class descriptors consumed by the converters.

A :class:`ClassDescriptor` names a message object and describes its scalar
attributes and its references to other object classes:

    Order = ClassDescriptor("Order", attrs={"OrderID": "uint32", "Price": "double"})
    OrderList = ClassDescriptor(
        "OrderList",
        attrs={"Immediate": "bool?"},
        refs={"Order": RefSpec(Order, is_container=True)},
    )
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ConversionError
from ..schema.types import Category, TypeDescriptor, resolve
from .values import parse_bool, parse_number


@dataclass(eq=False)
class AttrSpec:
    """A scalar attribute of an object class."""

    type: TypeDescriptor
    optional: bool = False


@dataclass(eq=False)
class RefSpec:
    """A reference from an object class to another object class.

    ``ref_class=None`` means the referenced object has no declared shape.
    """

    ref_class: "ClassDescriptor | None" = None
    is_container: bool = False


def _attr_spec(name: str, spec: Any) -> AttrSpec:
    if isinstance(spec, AttrSpec):
        return spec
    if isinstance(spec, TypeDescriptor):
        return AttrSpec(spec, spec.optional)
    if isinstance(spec, str):
        t = resolve(spec)
        return AttrSpec(t, t.optional)
    if isinstance(spec, Mapping) and "type" in spec:
        t = spec["type"] if isinstance(spec["type"], TypeDescriptor) else resolve(spec["type"])
        return AttrSpec(t, bool(spec.get("optional", t.optional)))

    raise ConversionError(f"Invalid specification for attribute '{name}': {spec!r}")


def _ref_spec(name: str, spec: Any) -> RefSpec:
    if isinstance(spec, RefSpec):
        return spec
    if spec is None or isinstance(spec, ClassDescriptor):
        return RefSpec(spec)
    if isinstance(spec, Mapping):
        return RefSpec(spec.get("ref_class"), bool(spec.get("is_container", False)))

    raise ConversionError(f"Invalid specification for reference '{name}': {spec!r}")


@dataclass(eq=False)
class ClassDescriptor:
    """Name, attributes and references of an object class.

    Attribute specs may be type expressions, TypeDescriptors, AttrSpecs or
    ``{"type": ..., "optional": ...}`` mappings. Reference specs may be
    ClassDescriptors, RefSpecs or ``{"ref_class": ..., "is_container": ...}``.
    Descriptors compare and hash by identity.
    """

    name: str | None
    attrs: dict[str, AttrSpec] = field(default_factory=dict)
    refs: dict[str, RefSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.attrs, Mapping) or not isinstance(self.refs, Mapping):
            raise ConversionError(
                f"Invalid object class '{self.name}', attributes and references must be mappings"
            )
        self.attrs = {k: _attr_spec(k, v) for k, v in self.attrs.items()}
        self.refs = {k: _ref_spec(k, v) for k, v in self.refs.items()}

    def ref_class(self, name: str) -> "ClassDescriptor":
        """Class of the referenced object ``name``; an empty class if undeclared."""
        ref = self.refs.get(name)
        if ref is not None and ref.ref_class is not None:
            return ref.ref_class
        return ClassDescriptor(name)

    def is_container(self, name: str) -> bool:
        ref = self.refs.get(name)
        return ref is not None and ref.is_container


def validate_class(obj_class: Any) -> ClassDescriptor:
    """Check the shape of an object class.

    Raises:
        ConversionError: If the class is not a named ClassDescriptor.
    """
    if (
        not isinstance(obj_class, ClassDescriptor)
        or not isinstance(obj_class.name, str)
        or not obj_class.name
    ):
        raise ConversionError(
            f"The object class {obj_class!r} is not valid", reason="invalid class"
        )
    return obj_class


def coerce_value(t: TypeDescriptor, value: Any, name: str = "value") -> Any:
    """Convert a raw value to the native representation of ``t``."""
    if t.category == Category.INTEGER:
        number = parse_number(value)
        if number is None or (isinstance(number, float) and not number.is_integer()):
            raise ConversionError(
                f"Invalid data value for integer property '{name}', value '{value}' "
                "is not an integer",
                reason="invalid value",
            )
        return int(number)

    if t.category == Category.NUMERIC:
        number = parse_number(value)
        if number is None:
            raise ConversionError(
                f"Invalid data value for numeric property '{name}', value '{value}' "
                "is not a number",
                reason="invalid value",
            )
        return float(number)

    if t.category == Category.BOOLEAN:
        return parse_bool(value)

    if t.category == Category.ALPHA:
        return str(value)

    if t.element is not None:
        element = resolve(t.element)
        if not isinstance(value, (list, tuple)):
            raise ConversionError(
                f"Invalid data value for array property '{name}', expected a list",
                reason="invalid value",
            )
        return [coerce_value(element, v, name) for v in value]

    return value


def coerce(obj_class: ClassDescriptor, data: Any) -> dict[str, Any]:
    """Convert raw (string) attribute values to typed values, recursively.

    Container references always come back as lists; absent containers as
    empty lists.

    Raises:
        ConversionError: If a non-optional attribute is missing or a value does
            not parse as its declared type.
    """
    validate_class(obj_class)

    if not isinstance(data, Mapping):
        raise ConversionError(
            f"Failed to initialize instance of '{obj_class.name}', expected an object"
        )

    result = dict(data)

    for name, attr in obj_class.attrs.items():
        if data.get(name) is None:
            if not attr.optional:
                raise ConversionError(
                    f"Failed to initialize instance of '{obj_class.name}', non-optional "
                    f"property '{name}' was not found",
                    reason="missing attribute",
                )
            result.pop(name, None)
            continue

        result[name] = coerce_value(attr.type, data[name], name)

    for name, ref in obj_class.refs.items():
        value = data.get(name)
        if value is None:
            if ref.is_container:
                result[name] = []
            continue

        items = value if isinstance(value, list) else [value]
        if ref.ref_class is not None:
            items = [coerce(ref.ref_class, v) if isinstance(v, Mapping) else v for v in items]

        result[name] = items if ref.is_container or isinstance(value, list) else items[0]

    return result
