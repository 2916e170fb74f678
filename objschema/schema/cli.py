"""Command-line interface for schema inspection, code generation and conversion."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from objschema.convert import json as json_format
from objschema.convert import struct as struct_format
from objschema.convert import xml as xml_format
from objschema.convert.descriptor import coerce
from objschema.exceptions import ObjSchemaError
from objschema.schema.registry import CyclePolicy, SchemaRegistry
from objschema.schema.render import Generator
from objschema.schema.xml_schema import ObjectSchema

FORMATS = {
    "xml": xml_format,
    "json": json_format,
    "struct": struct_format,
}

# Formats whose payloads are bytes rather than text
BINARY_FORMATS = frozenset(["struct"])


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _reports_errors(f: Callable[..., None]) -> Callable[..., None]:
    """Turn library errors into a click error message and exit code 1."""

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            f(*args, **kwargs)
        except ObjSchemaError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


def _load_registry(input_file: str, cycles: str) -> SchemaRegistry:
    registry = SchemaRegistry(cycles=cycles)
    registry.load(input_file)
    return registry


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages")
def cli(verbose: bool) -> None:
    """Object schema tools."""
    _configure_logging(verbose)


_cycles_option = click.option(
    "--cycles",
    type=click.Choice([p.value for p in CyclePolicy]),
    default=CyclePolicy.WARN.value,
    show_default=True,
    help="How to treat cyclic document dependencies",
)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Root schema document")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@_cycles_option
@_reports_errors
def info(input_file: str, output_json: bool, cycles: str) -> None:
    """Display the documents and members of a schema."""
    registry = _load_registry(input_file, cycles)

    if output_json:
        _output_json(registry)
    else:
        _output_plain(registry)


def _output_json(registry: SchemaRegistry) -> None:
    data: dict[str, Any] = {
        "root": registry.root.doc_id if registry.root else None,
        "documents": {doc.doc_id: doc.to_dict() for doc in registry},
        "cycles": registry.cycles,
    }
    click.echo(json.dumps(data, indent=2))


def _output_plain(registry: SchemaRegistry) -> None:
    console = Console()

    console.print("[bold cyan]Documents[/bold cyan]")
    doc_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    doc_table.add_column("Document", style="white")
    doc_table.add_column("Version", style="dim")
    doc_table.add_column("Members", style="yellow", justify="right")
    doc_table.add_column("Dependencies", style="green")

    for doc in registry:
        doc_table.add_row(
            doc.doc_id,
            str(doc.version),
            str(len(doc.member_map)),
            ", ".join(doc.dependencies),
        )

    console.print(doc_table)

    if registry.root is None:
        return

    console.print()
    console.print(f"[bold cyan]Members of {registry.root.doc_id}[/bold cyan]")
    member_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    member_table.add_column("Name", style="white")
    member_table.add_column("Type", style="yellow")
    member_table.add_column("Template", style="dim")

    def _add(member: Any, level: int) -> None:
        member_table.add_row("  " * level + member.full_name(), member.type, member.template or "")

    registry.root.parse(_add)
    console.print(member_table)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Root schema document")
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option(
    "--templates",
    "-t",
    "template_dirs",
    multiple=True,
    help="Template directory, searched before the built-in templates",
)
@_cycles_option
@_reports_errors
def gen(input_file: str, output_path: str, template_dirs: tuple[str, ...], cycles: str) -> None:
    """Generate a C++ header for every document of a schema."""
    registry = _load_registry(input_file, cycles)
    generator = Generator(list(template_dirs))

    for doc in registry:
        path = generator.write(doc, output_path)
        click.echo(str(path))


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="XML object schema")
@click.option("--output", "-o", "output_file", default=None, help="Output file (default stdout)")
@_reports_errors
def dump(input_file: str, output_file: str | None) -> None:
    """Dump an XML object schema as JSON."""
    schema = ObjectSchema.load(input_file)

    if output_file is None:
        click.echo(schema.to_json())
    else:
        schema.save(output_file)


@cli.command()
@click.option("--schema", "-s", "schema_file", required=True, help="XML object schema")
@click.option("--object", "-n", "object_name", required=True, help="Object to convert")
@click.option(
    "--from", "from_format", type=click.Choice(list(FORMATS)), required=True, help="Input format"
)
@click.option(
    "--to", "to_format", type=click.Choice(list(FORMATS)), required=True, help="Output format"
)
@click.option("--input", "-i", "input_file", required=True, help="Input payload")
@click.option("--output", "-o", "output_file", default=None, help="Output file (default stdout)")
@_reports_errors
def convert(
    schema_file: str,
    object_name: str,
    from_format: str,
    to_format: str,
    input_file: str,
    output_file: str | None,
) -> None:
    """Convert an object payload between XML, JSON and binary."""
    obj_class = ObjectSchema.load(schema_file).object_class(object_name)

    path = Path(input_file)
    if not path.is_file():
        raise click.ClickException(f"Input file '{input_file}' does not exist")
    data: str | bytes = (
        path.read_bytes() if from_format in BINARY_FORMATS else path.read_text(encoding="utf-8")
    )

    obj = coerce(obj_class, FORMATS[from_format].to_obj(data, obj_class))
    result = FORMATS[to_format].from_obj(obj, obj_class)

    if output_file is not None:
        if isinstance(result, bytes):
            Path(output_file).write_bytes(result)
        else:
            Path(output_file).write_text(result, encoding="utf-8")
    elif isinstance(result, bytes):
        click.echo(result, nl=False)
    else:
        click.echo(result, nl=not result.endswith("\n"))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
