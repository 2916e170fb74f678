"""JSON converter."""

import json
from collections.abc import Mapping
from typing import Any

from ..exceptions import ConversionError
from .descriptor import ClassDescriptor, validate_class


def to_obj(text: str | bytes, obj_class: ClassDescriptor | None = None) -> Any:
    """Parse a JSON document.

    With an object class the document must be a JSON object.

    Raises:
        ConversionError: If the text is not valid JSON or not an object.
    """
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConversionError(
            f"Failed to parse JSON document. {exc}", reason="malformed json"
        ) from exc

    if obj_class is not None:
        validate_class(obj_class)
        if not isinstance(obj, dict):
            raise ConversionError(
                f"Failed to convert JSON document to '{obj_class.name}', expected an object",
                reason="invalid object",
            )

    return obj


def from_obj(obj: Any, obj_class: ClassDescriptor | None = None) -> str:
    """Serialize an object to compact JSON.

    Raises:
        ConversionError: If the object is not serializable.
    """
    if obj_class is not None:
        validate_class(obj_class)
        if not isinstance(obj, Mapping):
            raise ConversionError(
                f"Failed to convert '{obj_class.name}' to JSON, expected an object",
                reason="invalid object",
            )

    try:
        return json.dumps(obj, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise ConversionError(
            f"Failed to convert object to JSON. {exc}", reason="invalid object"
        ) from exc
