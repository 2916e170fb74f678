"""C++ header generator for schema documents.

Each member is rendered with the template its ``template`` property names.
Members whose type has no template (fields, arrays, functions, interfaces)
are rendered as plain declarations.
"""

import logging
import os
from pathlib import Path

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    Template,
    TemplateNotFound,
)

from ..exceptions import SchemaError
from .document import SchemaDocument
from .member import Member
from .types import Category, resolve

logger = logging.getLogger(__name__)

PRIMITIVE_TYPE_MAP = {
    "int8": "int8_t",
    "int16": "int16_t",
    "int32": "int32_t",
    "int64": "int64_t",
    "uint8": "uint8_t",
    "uint16": "uint16_t",
    "uint32": "uint32_t",
    "uint64": "uint64_t",
    "byte": "int8_t",
    "short": "int16_t",
    "int": "int32_t",
    "long": "int64_t",
    "char": "uint8_t",
    "word": "uint16_t",
    "dword": "uint32_t",
    "ulong": "uint64_t",
    "float": "float",
    "double": "double",
    "bool": "bool",
    "string": "std::string",
}

INDENT = "    "


def map_type(name: str | None) -> str:
    """Map a schema type name to a C++ type; unknown names are user types."""
    if not name:
        return "void"
    if name in PRIMITIVE_TYPE_MAP:
        return PRIMITIVE_TYPE_MAP[name]

    t = resolve(name) if "[" in name else None
    if t is not None and t.element is not None:
        return f"std::array<{map_type(t.element)}, {t.size}>"
    if t is not None and t.category == Category.ALPHA:
        return "char"

    return name


def size_postfix(name: str | None) -> str:
    """Array suffix of a declaration; fixed strings get room for the terminator."""
    if name and name.startswith("string["):
        t = resolve(name)
        return f"[{(t.size or 0) + 1}]"
    return ""


def comment(doc: str) -> str:
    return "\n".join(f"// {line}".rstrip() for line in doc.splitlines())


def header_name(doc_id: str) -> str:
    """Header file for a document id: ``msgs/orders.json`` -> ``msgs/orders.h``."""
    return Path(doc_id).with_suffix(".h").as_posix()


class Generator:
    """Renders schema documents to C++ headers.

    Templates found in ``template_dirs`` take precedence over the built-in ones,
    so a document may name its own templates or replace the defaults.
    """

    def __init__(self, template_dirs: list[str | os.PathLike[str]] | None = None) -> None:
        loaders = [FileSystemLoader(os.fspath(d)) for d in template_dirs or []]
        loaders.append(PackageLoader("objschema.schema", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            line_comment_prefix="%%",
            line_statement_prefix="%",
        )
        self.env.globals.update(
            map_type=map_type,
            size_postfix=size_postfix,
            comment=comment,
            header_name=header_name,
            render_member=self.render_member,
        )

    def render(self, document: SchemaDocument) -> str:
        """Render a whole document with its ``file`` template."""
        template = self._template(document.templates["file"], document.doc_id)
        return template.render(document=document)

    def _template(self, name: str, owner: str) -> Template:
        try:
            return self.env.get_template(name)
        except TemplateNotFound as exc:
            raise SchemaError(
                f"Template '{name}' used by '{owner}' was not found",
                reason="missing template",
                member=owner,
            ) from exc

    def render_member(self, member: Member) -> str:
        templates = member.document.templates if member.document else {}
        if member.declared_template or member.type in templates:
            name = member.template
            if name:
                text = self._template(name, member.full_name()).render(member=member)
                return text.rstrip("\n")

        return self.declare(member)

    def declare(self, member: Member) -> str:
        """Plain declaration for members without a template."""
        lines = [comment(member.doc)] if member.doc else []

        if member.type == "array":
            lines.extend(self._declare_array(member))
        elif member.type == "function":
            returns = member.attributes.get("returns")
            params = ", ".join(
                f"{map_type(p.get('type'))} {p.get('name') or f'arg{i}'}"
                for i, p in enumerate(member.params)
            )
            lines.append(f"{map_type(returns)} {member.name}({params});")
        elif member.type == "interface":
            lines.append(f"class {member.name} {{")
            lines.append("public:")
            lines.append(f"{INDENT}virtual ~{member.name}() = default;")
            for m in member.members:
                decl = self.render_member(m)
                if m.type == "function" and not m.declared_template:
                    *doc, last = decl.splitlines()
                    decl = "\n".join([*doc, f"virtual {last[:-1]} = 0;"])
                lines.append(_indent(decl))
            lines.append("};")
        else:
            lines.append(f"{map_type(member.type)} {member.name}{size_postfix(member.type)};")

        return "\n".join(lines)

    def _declare_array(self, member: Member) -> list[str]:
        element = map_type(member.value_type)
        lines = []

        if member.members:
            element = f"{member.name}_item"
            lines.append(f"struct {element} {{")
            lines.extend(_indent(self.render_member(m)) for m in member.members)
            lines.append("};")

        size = member.attributes.get("size")
        if size:
            lines.append(f"std::array<{element}, {size}> {member.name};")
        else:
            lines.append(f"std::vector<{element}> {member.name};")
        return lines

    def write(self, document: SchemaDocument, output_dir: str | os.PathLike[str]) -> Path:
        """Render a document into ``output_dir``; returns the written path."""
        path = Path(output_dir) / header_name(document.doc_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(document), encoding="utf-8")
        logger.info("Wrote '%s'", path)
        return path


def _indent(text: str) -> str:
    return "\n".join(f"{INDENT}{line}" if line else line for line in text.splitlines())


def render(document: SchemaDocument) -> str:
    """Render a document with the built-in templates."""
    return Generator().render(document)
