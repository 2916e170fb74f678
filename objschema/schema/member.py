"""Schema members: the nodes of a schema document's type tree."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any

from dataclasses_json import DataClassJsonMixin

from ..convert.values import parse_number
from ..exceptions import DuplicateMemberError, SchemaError
from . import types

if TYPE_CHECKING:
    from .document import SchemaDocument

NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_TEMPLATES: dict[str, str] = {
    "file": "file.template",
    "namespace": "namespace.template",
    "struct": "struct.template",
    "union": "union.template",
    "enum": "enum.template",
}

# Keys of a raw member record that map to Member attributes
_MEMBER_KEYS = frozenset(
    ["type", "name", "doc", "template", "value_type", "values", "members", "inherits_from", "params"]
)

Visitor = Callable[["Member", int], Any]


def valid_name(name: Any) -> bool:
    """Check a member or enum value name against the identifier grammar."""
    return isinstance(name, str) and NAME_RE.match(name) is not None


def member_name(index: int, data: dict[str, Any]) -> str:
    """Local name of a member; anonymous members are named by position."""
    postfix = ""
    if data.get("type") == "function":
        params = data.get("params") or []
        postfix = "(" + ", ".join(str(p.get("type")) for p in params if isinstance(p, dict)) + ")"

    if data.get("name"):
        return f"{data['name']}{postfix}"

    return f"<anonymous>[{index}]{postfix}"


def _doc(doc: Any) -> str:
    if isinstance(doc, list):
        return "\n".join(str(line) for line in doc)
    return str(doc) if doc else ""


@dataclass
class EnumValue(DataClassJsonMixin):
    """A named value of an enum member."""

    name: str
    value: Any
    doc: str = ""


class Member:
    """A node in a schema document's type tree.

    Members are built recursively from the raw (JSON) record and validated as
    they are built. Each member keeps ``member_map``, a flat mapping from full
    name to member covering its children and the entries merged from them.
    """

    def __init__(
        self,
        parent: "Member | None",
        document: "SchemaDocument | None",
        index: int,
        data: dict[str, Any],
    ) -> None:
        self.parent = parent
        self.document = document
        self.index = index

        if not isinstance(data, dict):
            raise SchemaError(
                f"Invalid schema document. Member {index} of "
                f"'{parent.full_name() if parent else '<root>'}' is not an object",
                reason="invalid member",
            )

        self._local_name = member_name(index, data)
        self._full_name = (
            f"{parent.full_name()}::{self._local_name}" if parent else self._local_name
        )

        if not data.get("type"):
            raise SchemaError(
                f"Invalid schema document. Member '{self._full_name}' is missing the 'type' "
                "specification",
                reason="missing type",
                member=self._full_name,
            )
        if not isinstance(data["type"], str):
            raise SchemaError(
                f"Invalid schema document. Member '{self._full_name}' has an invalid type",
                reason="invalid type",
                member=self._full_name,
            )

        self.type: str = data["type"]
        self.name: str | None = data.get("name")
        self.doc = _doc(data.get("doc"))
        self.declared_template: str | None = data.get("template")
        self.inherits_from: str | None = data.get("inherits_from")
        self.params: list[dict[str, Any]] = list(data.get("params") or [])
        self.value_type: str | None = data.get("value_type")
        self.values: list[EnumValue] = []
        self.attributes = {k: v for k, v in data.items() if k not in _MEMBER_KEYS}

        self._validate_name()

        if self.type in ("struct", "union"):
            self._validate_struct(data)
        elif self.type == "enum":
            self._init_enum(data)
        elif self.type == "array":
            self._validate_array(data)

        self.members: list[Member] = []
        self.member_map: dict[str, Member] = {}

        raw_members = data.get("members")
        if raw_members is not None and not isinstance(raw_members, list):
            raise self._error("has an invalid 'members' list", "invalid members")

        for i, raw in enumerate(raw_members or []):
            self._add_member(i, raw)

    def __repr__(self) -> str:
        return f"Member({self._full_name!r}, type={self.type!r})"

    def full_name(self) -> str:
        return self._full_name

    @property
    def inline(self) -> bool:
        return types.is_inline(self.type)

    @property
    def is_primitive(self) -> bool:
        return types.is_primitive(self.type)

    @cached_property
    def template(self) -> str | None:
        """Code generation template for this member.

        The member's own declared template, else the nearest ancestor's declared
        template, else the document default for this member's type.
        """
        node: Member | None = self
        while node is not None:
            if node.declared_template:
                return node.declared_template
            node = node.parent

        templates = self.document.templates if self.document else DEFAULT_TEMPLATES
        return templates.get(self.type)

    def find_member(self, name: str) -> "Member | None":
        return self.member_map.get(name)

    def parse(self, visitor: Visitor, level: int = 0) -> None:
        """Visit this member and its descendants depth-first, pre-order."""
        visitor(self, level)

        for m in self.members:
            m.parse(visitor, level + 1)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.name is not None:
            data["name"] = self.name
        if self.doc:
            data["doc"] = self.doc
        if self.declared_template:
            data["template"] = self.declared_template
        if self.inherits_from:
            data["inherits_from"] = self.inherits_from
        if self.params:
            data["params"] = self.params
        if self.value_type:
            data["value_type"] = self.value_type
        if self.values:
            data["values"] = [v.to_dict() for v in self.values]
        data.update(self.attributes)
        if self.members:
            data["members"] = [m.to_dict() for m in self.members]
        return data

    # Construction helpers

    def _error(self, problem: str, reason: str) -> SchemaError:
        return SchemaError(
            f"Invalid schema document. '{self.type}' type '{self._full_name}' {problem}",
            reason=reason,
            member=self._full_name,
        )

    def _validate_name(self) -> None:
        if self.type not in ("struct", "union") and self.name is None:
            raise SchemaError(
                f"Member '{self._full_name}' has no name, only 'struct' and 'union' types "
                "can be anonymous",
                reason="missing name",
                member=self._full_name,
            )

        if self.name is not None and not valid_name(self.name):
            raise SchemaError(
                f"Member '{self._full_name}' has an invalid name",
                reason="invalid name",
                member=self._full_name,
            )

    def _validate_struct(self, data: dict[str, Any]) -> None:
        if not isinstance(data.get("members"), list) or len(data["members"]) == 0:
            raise self._error("has no members", "no members")

    def _init_enum(self, data: dict[str, Any]) -> None:
        if not self.value_type:
            self.value_type = "int32"

        if not types.is_primitive(self.value_type):
            raise self._error("has non-primitive value type", "invalid value type")

        values = data.get("values")
        if not isinstance(values, list) or len(values) == 0:
            raise self._error("has no values", "no values")

        seen: set[str] = set()
        for v in values:
            if not isinstance(v, dict) or v.get("name") is None or v.get("value") is None:
                raise self._error("has invalid values", "invalid values")
            if not valid_name(v["name"]):
                raise self._error("has invalid values", "invalid values")
            if v["name"] in seen:
                raise DuplicateMemberError(self._full_name, f"{self._full_name}::{v['name']}")
            seen.add(v["name"])

            self.values.append(EnumValue(v["name"], self._enum_value(v["value"]), _doc(v.get("doc"))))

    def _enum_value(self, raw: Any) -> Any:
        if not types.is_numeric(self.value_type):
            return raw

        number = parse_number(raw)
        if number is None:
            raise self._error("has invalid values", "invalid values")

        if types.is_integer(self.value_type):
            if isinstance(number, float):
                if not number.is_integer():
                    raise self._error("has invalid values", "invalid values")
                number = int(number)
            return number

        return float(number)

    def _validate_array(self, data: dict[str, Any]) -> None:
        if not self.value_type or not types.is_native(self.value_type):
            raise SchemaError(
                f"Invalid 'array' in member '{self._full_name}', a valid 'value_type' was "
                "not specified",
                reason="invalid value type",
                member=self._full_name,
            )

        if self.value_type in ("struct", "union") and not data.get("members"):
            raise self._error("has no members", "no members")

    def _add_member(self, index: int, raw: Any) -> None:
        if isinstance(raw, dict):
            name = f"{self._full_name}::{member_name(index, raw)}"
            if name in self.member_map:
                raise DuplicateMemberError(self._full_name, name)

        member = Member(self, self.document, index, raw)
        self.members.append(member)
        self.map_member(member)

    def map_member(self, member: "Member") -> None:
        """Enter a child and its merged names into this member's map.

        Entries of an inline child are kept out of a non-inline parent's map.
        """
        self.member_map[member.full_name()] = member

        if member.inline and not self.inline:
            return

        for name, m in member.member_map.items():
            if name in self.member_map:
                raise DuplicateMemberError(self._full_name, name)
            self.member_map[name] = m
