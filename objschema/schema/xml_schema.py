"""XML object schema (``CrabelObjectSchema``) documents.

An object schema groups message object definitions and declares named scalar
attribute types:

    <CrabelObjectSchema>
      <Groups>
        <Group Name="Trading">
          <Intent>Trading messages</Intent>
          <ObjectTypes>
            <ObjectDef Name="Order" MessageType="ORD">
              <Attributes>
                <Attribute Name="OrderID" Index="1" Type="OrderId"/>
              </Attributes>
              <References>
                <Object Name="Fill" Index="2" Type="Fill" MaxCount="100"/>
              </References>
            </ObjectDef>
          </ObjectTypes>
        </Group>
      </Groups>
      <AttributeTypes>
        <Attribute Name="OrderId" Type="Integer" Size="8" MinValue="0"/>
      </AttributeTypes>
    </CrabelObjectSchema>

:meth:`ObjectSchema.object_class` turns an object definition into the
:class:`~objschema.convert.descriptor.ClassDescriptor` the converters consume.
"""

import json
import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dataclasses_json import DataClassJsonMixin

from ..convert.descriptor import AttrSpec, ClassDescriptor, RefSpec
from ..convert.values import parse_bool, parse_number, parse_string
from ..exceptions import SchemaError, SchemaIOError, UnknownTypeError
from . import types
from .types import Category, TypeDescriptor

logger = logging.getLogger(__name__)

ROOT_ELEMENT = "CrabelObjectSchema"

# Width used when an Integer or Numeric type declares no size
DEFAULT_SIZES = {
    Category.INTEGER: 4,
    Category.NUMERIC: 8,
    Category.BOOLEAN: 1,
}

_CATEGORY_NAMES = frozenset(c.value for c in Category)


def _intent(elem: ET.Element) -> str:
    child = elem.find("Intent")
    return parse_string(child.text.strip() if child is not None and child.text else None)


def _children(elem: ET.Element, container: str, tag: str) -> list[ET.Element]:
    return elem.findall(f"{container}/{tag}")


def _int(value: str | None) -> int | None:
    number = parse_number(value)
    return int(number) if number is not None else None


@dataclass
class AllowedValue(DataClassJsonMixin):
    value: str | None
    meaning: str | None = None
    intent: str | None = None


@dataclass
class TypeDef(DataClassJsonMixin):
    """A named scalar attribute type, aliasing a category or another TypeDef."""

    name: str
    type: str
    size: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    intent: str = ""
    external_unit: str | None = None
    values: list[AllowedValue] = field(default_factory=list)


@dataclass
class AttributeDef(DataClassJsonMixin):
    name: str
    type: str
    index: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    optional: bool = False
    intent: str = ""


@dataclass
class ReferenceDef(DataClassJsonMixin):
    name: str
    type: str
    index: int | None = None
    intent: str | None = None
    link_name: str | None = None
    min_count: int | None = None
    max_count: int | None = None

    @property
    def is_container(self) -> bool:
        """References without an upper bound, or with one above 1, hold lists."""
        return self.max_count is None or self.max_count > 1


@dataclass
class ObjectDef(DataClassJsonMixin):
    """A message object: ordered attributes plus references to other objects."""

    name: str
    path: str | None = None
    msg_type: str | None = None
    intent: str = ""
    attrs: list[AttributeDef] = field(default_factory=list)
    refs: list[ReferenceDef] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.path}::{self.name}" if self.path else self.name


@dataclass
class GroupDef(DataClassJsonMixin):
    """A group of objects; ``name`` is the ``::`` separated path from the top group."""

    name: str
    is_interface: bool = False
    intent: str = ""
    parent: str | None = None


class ObjectSchema:
    """A loaded XML object schema with lookup tables for groups, objects and types."""

    def __init__(self) -> None:
        self.path: Path | None = None
        self.groups: list[GroupDef] = []
        self.objects: list[ObjectDef] = []
        self.types: list[TypeDef] = []
        self._group_map: dict[str, GroupDef] = {}
        self._object_map: dict[str, ObjectDef] = {}
        self._type_map: dict[str, TypeDef] = {}
        self._classes: dict[str, ClassDescriptor] = {}

    def __repr__(self) -> str:
        return (
            f"ObjectSchema(groups={len(self.groups)}, objects={len(self.objects)}, "
            f"types={len(self.types)})"
        )

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> "ObjectSchema":
        """Read an object schema file.

        Raises:
            SchemaIOError: If the file does not exist or cannot be read.
            SchemaError: If the file is not a valid object schema.
        """
        path = Path(path)
        if not path.is_file():
            raise SchemaIOError(
                f"Failed to read schema file '{path}'. The file does not exist", str(path)
            )

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SchemaIOError(f"Failed to read schema file '{path}'. {exc}", str(path)) from exc

        schema = cls.parse(text, source=str(path))
        schema.path = path
        return schema

    @classmethod
    def parse(cls, text: str, source: str = "<string>") -> "ObjectSchema":
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise SchemaError(
                f"Failed to parse schema file '{source}'. {exc}",
                reason="invalid xml",
                document=source,
            ) from exc

        if root.tag != ROOT_ELEMENT:
            raise SchemaError(
                f"The schema file '{source}' is not valid, the '{ROOT_ELEMENT}' element is missing",
                reason="invalid document",
                document=source,
            )

        schema = cls()
        for g in _children(root, "Groups", "Group"):
            schema._parse_group(None, g)
        for t in _children(root, "AttributeTypes", "Attribute"):
            schema._parse_type(t)

        logger.debug("Parsed object schema '%s': %r", source, schema)
        return schema

    def _parse_group(self, parent: GroupDef | None, elem: ET.Element) -> GroupDef:
        name = elem.get("Name") or ""
        group = GroupDef(
            f"{parent.name}::{name}" if parent else name,
            parse_bool(elem.get("IsInterface")),
            _intent(elem),
            parent.name if parent else None,
        )
        self.groups.append(group)
        self._group_map[group.name] = group

        for g in _children(elem, "Groups", "Group"):
            if g.get("Name"):
                self._parse_group(group, g)

        for o in _children(elem, "ObjectTypes", "ObjectDef"):
            if o.get("Name"):
                self._parse_object(group, o)

        return group

    def _parse_object(self, group: GroupDef, elem: ET.Element) -> ObjectDef:
        obj = ObjectDef(
            elem.get("Name") or "",
            group.name,
            elem.get("MessageType"),
            _intent(elem),
        )

        if obj.full_name in self._object_map:
            raise SchemaError(
                f"Failed to create object '{obj.full_name}', this object has already been defined",
                reason="duplicate object",
                member=obj.full_name,
            )

        for a in _children(elem, "Attributes", "Attribute"):
            obj.attrs.append(
                AttributeDef(
                    name=a.get("Name") or "",
                    type=a.get("Type") or "",
                    index=_int(a.get("Index")),
                    min_value=parse_number(a.get("MinValue")),
                    max_value=parse_number(a.get("MaxValue")),
                    optional=parse_bool(a.get("Optional")),
                    intent=_intent(a),
                )
            )

        for r in _children(elem, "References", "Object"):
            obj.refs.append(
                ReferenceDef(
                    name=r.get("Name") or "",
                    type=r.get("Type") or r.get("Name") or "",
                    index=_int(r.get("Index")),
                    intent=r.get("Intent"),
                    link_name=r.get("LinkName"),
                    min_count=_int(r.get("MinCount")),
                    max_count=_int(r.get("MaxCount")),
                )
            )

        self.objects.append(obj)
        self._object_map[obj.full_name] = obj
        return obj

    def _parse_type(self, elem: ET.Element) -> TypeDef:
        t = TypeDef(
            name=elem.get("Name") or "",
            type=elem.get("Type") or "",
            size=_int(elem.get("Size")),
            min_value=parse_number(elem.get("MinValue")),
            max_value=parse_number(elem.get("MaxValue")),
            intent=_intent(elem),
            external_unit=elem.get("ExternalUnit"),
            values=[
                AllowedValue(v.get("Value"), v.get("Meaning"), v.get("Intent"))
                for v in _children(elem, "AllowedValues", "AllowedValue")
            ],
        )
        self.types.append(t)
        self._type_map[t.name] = t
        return t

    # Lookups

    def get_type(self, name: str) -> TypeDef | None:
        return self._type_map.get(name)

    def get_group(self, name: str) -> GroupDef | None:
        return self._group_map.get(name)

    def get_object(self, name: str) -> ObjectDef | None:
        """Find an object by qualified (``Group::Object``) or bare name.

        Raises:
            SchemaError: If a bare name matches objects in several groups.
        """
        obj = self._object_map.get(name)
        if obj is not None:
            return obj

        matches = [o for o in self.objects if o.name == name]
        if len(matches) > 1:
            raise SchemaError(
                f"Object name '{name}' is ambiguous, use one of: "
                + ", ".join(o.full_name for o in matches),
                reason="ambiguous object",
            )
        return matches[0] if matches else None

    def _alias_chain(self, type_name: str) -> tuple[list[TypeDef], TypeDescriptor]:
        """Follow type aliases down to a category or a catalog type."""
        chain: list[TypeDef] = []
        name = type_name

        while name not in _CATEGORY_NAMES:
            t = self._type_map.get(name)
            if t is None:
                try:
                    return chain, types.resolve(name)
                except UnknownTypeError:
                    if chain:
                        raise UnknownTypeError(f"{name} (aliased by '{chain[-1].name}')") from None
                    raise

            if t in chain:
                raise SchemaError(
                    f"Type '{type_name}' is defined in terms of itself: "
                    + " -> ".join([c.name for c in chain] + [t.name]),
                    reason="type cycle",
                )
            chain.append(t)
            name = t.type

        return chain, TypeDescriptor(name, Category(name))

    def get_native_type(self, type_name: str) -> Category:
        """Category a type name or alias ultimately refers to."""
        return self._alias_chain(type_name)[1].category

    def type_descriptor(
        self,
        type_name: str,
        *,
        min_value: float | None = None,
        max_value: float | None = None,
        optional: bool = False,
    ) -> TypeDescriptor:
        """Resolve a type name to a TypeDescriptor.

        Size and bounds come from the nearest declaration along the alias chain;
        the keyword bounds, when given, take precedence over all of them.
        """
        chain, base = self._alias_chain(type_name)

        size = next((t.size for t in chain if t.size is not None), base.size)
        if min_value is None:
            min_value = next((t.min_value for t in chain if t.min_value is not None), base.min_value)
        if max_value is None:
            max_value = next((t.max_value for t in chain if t.max_value is not None), base.max_value)
        if size is None:
            size = DEFAULT_SIZES.get(base.category)

        return TypeDescriptor(
            type_name, base.category, size, min_value, max_value, optional, base.element
        )

    def object_class(self, name: str) -> ClassDescriptor:
        """Build the converter class descriptor for an object, once per object.

        Raises:
            SchemaError: If the object, or an object it references, is not defined.
        """
        obj = self.get_object(name)
        if obj is None:
            raise SchemaError(f"Unknown object '{name}'", reason="unknown object")

        cls = self._classes.get(obj.full_name)
        if cls is not None:
            return cls

        # Registered before it is filled in so references back to it resolve
        registered = set(self._classes)
        cls = ClassDescriptor(obj.name)
        self._classes[obj.full_name] = cls

        try:
            attrs = sorted(obj.attrs, key=lambda a: (a.index is None, a.index or 0))
            cls.attrs = {
                a.name: AttrSpec(
                    self.type_descriptor(
                        a.type,
                        min_value=a.min_value,
                        max_value=a.max_value,
                        optional=a.optional,
                    ),
                    a.optional,
                )
                for a in attrs
            }

            refs = sorted(obj.refs, key=lambda r: (r.index is None, r.index or 0))
            cls.refs = {r.name: RefSpec(self.object_class(r.type), r.is_container) for r in refs}
        except Exception:
            # Classes built during this call may point at the unfinished one
            for key in set(self._classes) - registered:
                del self._classes[key]
            raise

        return cls

    # Dump

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "objects": [o.to_dict() for o in self.objects],
            "types": [t.to_dict() for t in self.types],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)

    def save(self, path: str | os.PathLike[str]) -> None:
        Path(path).write_text(self.to_json() + "\n", encoding="utf-8")
        logger.info("Wrote object schema dump to '%s'", path)
