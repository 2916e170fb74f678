"""Schema documents: one parsed JSON schema file."""

import glob
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..exceptions import DuplicateDocumentError, DuplicateMemberError, SchemaError, SchemaIOError
from .member import DEFAULT_TEMPLATES, Member, Visitor
from .version import SUPPORTED_VERSION, SemanticVersion, check_version, is_valid_version

if TYPE_CHECKING:
    from .registry import SchemaRegistry

logger = logging.getLogger(__name__)

# Top-level keys of a raw document that map to SchemaDocument attributes
_DOCUMENT_KEYS = frozenset(
    [
        "name",
        "version",
        "author",
        "doc",
        "root_namespace",
        "templates",
        "dependencies",
        "members",
    ]
)


def read_document(path: str | os.PathLike[str]) -> Any:
    """Read and decode a JSON schema file.

    Raises:
        SchemaIOError: If the file does not exist or cannot be read.
        SchemaError: If the file is not valid JSON.
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

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(
            f"Failed to parse schema file '{path}'. {exc}", reason="invalid json"
        ) from exc


def is_valid_document(
    path: str | os.PathLike[str], supported: SemanticVersion = SUPPORTED_VERSION
) -> bool:
    """Check that a file looks like a schema document: JSON with a supported version."""
    if Path(path).suffix != ".json":
        return False

    try:
        raw = read_document(path)
    except SchemaError:
        return False

    return isinstance(raw, dict) and is_valid_version(raw.get("version"), supported)


def document_id(path: str | os.PathLike[str], base: str | os.PathLike[str]) -> str:
    """Identifier of a document: its path relative to ``base``, with '/' separators."""
    return Path(os.path.relpath(Path(path).resolve(), Path(base).resolve())).as_posix()


class SchemaDocument:
    """One schema file: its members, member index and dependencies.

    ``doc_id`` identifies the document inside its registry. ``dependencies`` holds
    the declared dependencies after glob expansion until the registry replaces
    it with the transitive closure; ``direct_dependencies`` keeps the declared set.
    """

    def __init__(
        self,
        doc_id: str,
        path: str | os.PathLike[str],
        registry: "SchemaRegistry | None" = None,
    ) -> None:
        self.doc_id = doc_id
        self.path = Path(path)
        self.registry = registry

        self.name = doc_id
        self.version: SemanticVersion | None = None
        self.author: str | None = None
        self.doc = ""
        self.root_namespace: str | None = None
        self.templates: dict[str, str] = dict(DEFAULT_TEMPLATES)
        self.direct_dependencies: list[str] = []
        self.dependencies: list[str] = []
        self.members: list[Member] = []
        self.member_map: dict[str, Member] = {}
        self.attributes: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"SchemaDocument({self.doc_id!r}, members={len(self.members)})"

    @property
    def supported_version(self) -> SemanticVersion:
        if self.registry is not None:
            return self.registry.supported_version
        return SUPPORTED_VERSION

    def load(self) -> "SchemaDocument":
        """Read the document file and initialize from it."""
        if self.registry is not None and self.doc_id in self.registry:
            raise DuplicateDocumentError(
                f"Invalid load of schema document '{self.doc_id}', a document with the same "
                "name has already been processed",
                reason="duplicate document",
                document=self.doc_id,
            )

        raw = read_document(self.path)

        try:
            self.init(raw)
        except SchemaError as exc:
            if exc.document is None:
                exc.document = self.doc_id
            raise

        return self

    def init(self, raw: Any) -> None:
        """Validate a decoded document and build its member tree.

        Nothing is assigned to the document until every check has passed.
        """
        if not isinstance(raw, dict):
            raise SchemaError("Schema document must be a JSON object", reason="invalid document")

        version = check_version(raw.get("version"), self.supported_version)

        raw_members = raw.get("members", [])
        if not isinstance(raw_members, list):
            raise SchemaError("Schema 'members' must be a list", reason="invalid members")

        templates = raw.get("templates") or {}
        if not isinstance(templates, dict):
            raise SchemaError("Schema 'templates' must be an object", reason="invalid templates")

        declared = raw.get("dependencies") or []
        if isinstance(declared, str):
            declared = [declared]
        if not isinstance(declared, list):
            raise SchemaError(
                "Schema 'dependencies' must be a list", reason="invalid dependencies"
            )

        self.templates = {**DEFAULT_TEMPLATES, **templates}

        members: list[Member] = []
        member_map: dict[str, Member] = {}
        for i, data in enumerate(raw_members):
            member = Member(None, self, i, data)
            members.append(member)

            for name, m in [(member.full_name(), member), *member.member_map.items()]:
                if name in member_map:
                    raise DuplicateMemberError(self.doc_id, name)
                member_map[name] = m

        dependencies = self._expand_dependencies(declared)

        self.name = raw.get("name") or Path(self.doc_id).stem
        self.version = version
        self.author = raw.get("author")
        self.doc = "\n".join(raw["doc"]) if isinstance(raw.get("doc"), list) else raw.get("doc") or ""
        self.root_namespace = raw.get("root_namespace")
        self.attributes = {k: v for k, v in raw.items() if k not in _DOCUMENT_KEYS}
        self.members = members
        self.member_map = member_map
        self.direct_dependencies = dependencies
        self.dependencies = list(dependencies)

        if self.registry is not None:
            for dep in dependencies:
                self.registry.enqueue(dep)

    def _expand_dependencies(self, patterns: list[Any]) -> list[str]:
        """Expand dependency globs relative to this document's directory."""
        base = self.path.parent
        own = self.path.resolve()
        id_base = self.registry.base_path if self.registry is not None else None
        found: list[str] = []

        for pattern in patterns:
            if not isinstance(pattern, str):
                raise SchemaError(
                    f"Invalid dependency {pattern!r}, dependencies must be paths",
                    reason="invalid dependencies",
                )

            full = pattern if os.path.isabs(pattern) else str(base / pattern)
            matches = sorted(glob.glob(full, recursive=True))
            if not matches:
                logger.warning("Dependency '%s' of '%s' matched no files", pattern, self.doc_id)

            for candidate in matches:
                path = Path(candidate).resolve()
                if not path.is_file() or path == own:
                    continue

                if not is_valid_document(path, self.supported_version):
                    logger.debug("Skipping '%s', it is not a schema document", candidate)
                    continue

                dep_id = document_id(path, id_base if id_base is not None else base)
                if dep_id not in found:
                    found.append(dep_id)

        return found

    def find_member(self, name: str) -> Member | None:
        return self.member_map.get(name)

    def parse(self, visitor: Visitor) -> None:
        """Visit every member of the document depth-first."""
        for m in self.members:
            m.parse(visitor, 0)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        data["version"] = str(self.version) if self.version else None
        if self.author:
            data["author"] = self.author
        if self.doc:
            data["doc"] = self.doc
        if self.root_namespace:
            data["root_namespace"] = self.root_namespace
        data["templates"] = dict(self.templates)
        data["dependencies"] = list(self.dependencies)
        data.update(self.attributes)
        data["members"] = [m.to_dict() for m in self.members]
        return data
