"""XML converter.

Mapping between an element and a plain object:

* XML attributes are scalar fields that are not declared references.
* Child elements are declared references, nested objects and lists. A child
  that appears once is a single value unless its reference is a container
  or its attribute is a fixed array; a child that appears several times is
  always a list.
* Leaf elements (no attributes, no children) hold their text as a string,
  except that an empty element of a declared object reference is an empty object;
  text mixed with attributes or children is kept under the ``"_"`` key.

Values are not coerced: use :func:`objschema.convert.descriptor.coerce` to get
typed values. A single-element list in a field that is not a declared
container comes back as a scalar.
"""

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from ..exceptions import ConversionError
from .descriptor import ClassDescriptor, validate_class

TEXT_KEY = "_"

INDENT = "    "


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _lower(elem: ET.Element, obj_class: ClassDescriptor, is_object: bool = False) -> Any:
    children = list(elem)
    if not elem.attrib and not children:
        if is_object and not (elem.text or "").strip():
            return {}
        return elem.text or ""

    result: dict[str, Any] = dict(elem.attrib)

    groups: dict[str, list[ET.Element]] = {}
    for child in children:
        groups.setdefault(child.tag, []).append(child)

    for tag, elems in groups.items():
        if tag in result:
            raise ConversionError(
                f"'{tag}' is both an attribute and a child element of '{elem.tag}'",
                reason="ambiguous field",
            )

        ref = obj_class.refs.get(tag)
        attr = obj_class.attrs.get(tag)
        child_class = obj_class.ref_class(tag)
        is_object = ref is not None and ref.ref_class is not None
        values = [_lower(e, child_class, is_object) for e in elems]

        if (
            len(values) > 1
            or obj_class.is_container(tag)
            or (attr is not None and attr.type.element is not None)
        ):
            result[tag] = values
        else:
            result[tag] = values[0]

    text = (elem.text or "").strip()
    if text:
        result[TEXT_KEY] = text

    return result


def _raise(name: str, value: Any, obj_class: ClassDescriptor) -> ET.Element:
    elem = ET.Element(name)

    if not isinstance(value, Mapping):
        elem.text = _text(value)
        return elem

    for k, v in value.items():
        if v is None:
            continue

        if k == TEXT_KEY:
            elem.text = _text(v)
        elif k in obj_class.refs or isinstance(v, (Mapping, list, tuple)):
            child_class = obj_class.ref_class(k)
            for item in v if isinstance(v, (list, tuple)) else [v]:
                elem.append(_raise(k, item, child_class))
        else:
            elem.set(k, _text(v))

    return elem


def to_obj(xml: str | bytes, obj_class: ClassDescriptor | None = None) -> dict[str, Any]:
    """Convert an XML document to a plain object (the root element's body).

    Without an object class the root element may have any name.

    Raises:
        ConversionError: If the XML is malformed or the root element does not
            match the object class name.
    """
    if obj_class is None:
        obj_class = ClassDescriptor(None)
    elif not isinstance(obj_class, ClassDescriptor):
        raise ConversionError(
            f"The object class {obj_class!r} is not valid", reason="invalid class"
        )

    try:
        root = ET.fromstring(xml)
    except ET.ParseError as exc:
        raise ConversionError(
            f"Failed to parse XML document. {exc}", reason="malformed xml"
        ) from exc

    if obj_class.name is not None and root.tag != obj_class.name:
        raise ConversionError(
            f"Failed to convert XML document to an object, the object class "
            f"'{obj_class.name}' is not for object '{root.tag}'",
            reason="wrong root",
        )

    body = _lower(root, obj_class)
    if isinstance(body, str):
        return {TEXT_KEY: body} if body.strip() else {}
    return body


def from_obj(obj: Mapping[str, Any], obj_class: ClassDescriptor) -> str:
    """Convert a plain object to indented XML with the class name as root element.

    Raises:
        ConversionError: If the class is invalid or ``obj`` is not a mapping.
    """
    validate_class(obj_class)

    if not isinstance(obj, Mapping):
        raise ConversionError(
            f"Failed to convert '{obj_class.name}' to XML, expected an object",
            reason="invalid object",
        )

    root = _raise(str(obj_class.name), obj, obj_class)
    ET.indent(root, space=INDENT)
    return ET.tostring(root, encoding="unicode") + "\n"
