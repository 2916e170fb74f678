"""Schema registry: loads a root document and every document it depends on."""

import logging
import os
from collections import deque
from collections.abc import Iterator
from enum import StrEnum, auto
from pathlib import Path

from ..exceptions import DependencyCycleError
from .document import SchemaDocument, document_id
from .member import Member
from .version import SUPPORTED_VERSION, SemanticVersion

logger = logging.getLogger(__name__)


class CyclePolicy(StrEnum):
    """What to do when a document depends on itself, directly or indirectly."""

    IGNORE = auto()
    WARN = auto()
    ERROR = auto()


class SchemaRegistry:
    """Table of loaded schema documents keyed by document id.

    Document ids are normalized paths relative to the directory of the first
    root document loaded, so a file reached from several roots has one id. A
    load is all or nothing: its documents are entered in the table only after
    every one of them loaded and the dependency closure was checked.

    Example:
        registry = SchemaRegistry()
        root = registry.load("schemas/messages.json")
        for doc in registry:
            print(doc.doc_id, doc.dependencies)
    """

    def __init__(
        self,
        *,
        supported_version: SemanticVersion = SUPPORTED_VERSION,
        cycles: CyclePolicy | str = CyclePolicy.WARN,
    ) -> None:
        self.supported_version = supported_version
        self.cycle_policy = CyclePolicy(cycles)
        self.base_path: Path | None = None
        self.root: SchemaDocument | None = None
        self.documents: dict[str, SchemaDocument] = {}
        self.cycles: dict[str, list[str]] = {}
        self._staged: dict[str, SchemaDocument] = {}
        self._queue: deque[str] = deque()
        self._visited: set[str] = set()

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self.documents

    def __iter__(self) -> Iterator[SchemaDocument]:
        return iter(self.documents.values())

    def __len__(self) -> int:
        return len(self.documents)

    def get(self, doc_id: str) -> SchemaDocument | None:
        return self.documents.get(doc_id)

    def reset(self) -> None:
        """Forget every loaded document."""
        self.documents.clear()
        self.cycles.clear()
        self.root = None
        self.base_path = None

    def document_path(self, doc_id: str) -> Path:
        if os.path.isabs(doc_id) or self.base_path is None:
            return Path(doc_id)
        return self.base_path / doc_id

    def load(self, path: str | os.PathLike[str]) -> SchemaDocument:
        """Load a root document, its dependencies, and expand dependency closures.

        On failure the registry is left as it was before the call.

        Raises:
            DuplicateDocumentError: If the root document was already loaded.
            SchemaError: If the root or any dependency fails to load.
        """
        path = Path(path).resolve()
        previous_base = self.base_path
        if self.base_path is None:
            self.base_path = path.parent
        doc_id = document_id(path, self.base_path)

        try:
            root = self._load_document(doc_id)
            while self._queue:
                dep = self._queue.popleft()
                if dep not in self.documents and dep not in self._visited:
                    self._load_document(dep)

            documents = {**self.documents, **self._staged}
            closure, cycles = self._closure(documents)
            self._report_cycles(cycles)
        except Exception:
            self.base_path = previous_base
            raise
        finally:
            self._staged = {}
            self._queue.clear()
            self._visited.clear()

        self._commit(documents, closure, cycles)
        self.root = root
        logger.info("Loaded schema '%s' with %d document(s)", doc_id, len(self.documents))
        return root

    def enqueue(self, doc_id: str) -> None:
        """Queue a dependency for loading unless it is loaded or pending."""
        if doc_id in self.documents or doc_id in self._visited or doc_id in self._queue:
            return
        self._queue.append(doc_id)

    def _load_document(self, doc_id: str) -> SchemaDocument:
        self._visited.add(doc_id)
        logger.debug("Loading schema document '%s'", doc_id)

        doc = SchemaDocument(doc_id, self.document_path(doc_id), registry=self).load()
        if doc.members:
            self._staged[doc_id] = doc
        else:
            logger.warning("Schema document '%s' has no members and was not registered", doc_id)

        return doc

    def expand_dependencies(self) -> None:
        """Replace each document's dependencies with their transitive closure.

        Cycles are reported according to ``cycle_policy``; with
        ``CyclePolicy.ERROR`` nothing is changed.
        """
        closure, cycles = self._closure(self.documents)
        self._report_cycles(cycles)
        self._commit(self.documents, closure, cycles)

    def _commit(
        self,
        documents: dict[str, SchemaDocument],
        closure: dict[str, list[str]],
        cycles: dict[str, list[str]],
    ) -> None:
        for doc_id, deps in closure.items():
            documents[doc_id].dependencies = deps
        self.documents = documents
        self.cycles = cycles

    def _closure(
        self, documents: dict[str, SchemaDocument]
    ) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
        """Transitive dependencies and dependency cycles of every document.

        Every name is added at most once per document, so cyclic declarations
        terminate.
        """
        closure: dict[str, list[str]] = {}
        cycles: dict[str, list[str]] = {}

        for doc in documents.values():
            deps = list(doc.direct_dependencies)
            seen = set(deps)
            via: dict[str, str] = {}
            queue = deque(deps)
            cycle: list[str] | None = None

            while queue:
                name = queue.popleft()
                dep_doc = documents.get(name)
                if dep_doc is None:
                    continue

                for d in dep_doc.direct_dependencies:
                    if d == doc.doc_id:
                        if cycle is None:
                            cycle = self._cycle_path(doc.doc_id, name, via)
                        continue
                    if d not in seen:
                        seen.add(d)
                        via[d] = name
                        deps.append(d)
                        queue.append(d)

            closure[doc.doc_id] = deps
            if cycle is not None:
                cycles[doc.doc_id] = cycle

        return closure, cycles

    @staticmethod
    def _cycle_path(start: str, last: str, via: dict[str, str]) -> list[str]:
        path = [last]
        while path[-1] in via:
            path.append(via[path[-1]])
        return [start, *reversed(path), start]

    def _report_cycles(self, cycles: dict[str, list[str]]) -> None:
        if self.cycle_policy == CyclePolicy.IGNORE:
            return

        for doc_id, cycle in cycles.items():
            if self.cycle_policy == CyclePolicy.ERROR:
                raise DependencyCycleError(doc_id, cycle)
            logger.warning("Cyclic schema dependency: %s", " -> ".join(cycle))

    def find_member(self, name: str) -> Member | None:
        """Find a member by full name, searching the root document first."""
        if self.root is not None and self.root.doc_id in self.documents:
            member = self.root.find_member(name)
            if member is not None:
                return member

        for doc in self.documents.values():
            member = doc.find_member(name)
            if member is not None:
                return member

        return None
