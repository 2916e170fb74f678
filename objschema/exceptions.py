"""Exceptions raised by schema loading and message conversion."""


class ObjSchemaError(RuntimeError):
    """Base exception for all objschema errors."""


class SchemaError(ObjSchemaError):
    """Raised when a schema document is malformed or semantically invalid.

    Attributes:
        reason: Short machine-readable kind, e.g. ``"missing type"``.
        member: Full name of the offending member, if any.
        document: Name of the document being loaded, filled in by the loader.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        member: str | None = None,
        document: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.member = member
        self.document = document


class DuplicateMemberError(SchemaError):
    """Raised when two members resolve to the same fully-qualified name."""

    def __init__(self, owner: str, name: str) -> None:
        super().__init__(
            f"Invalid schema document, the definition of '{owner}' has duplicate member '{name}'",
            reason="duplicate member",
            member=owner,
        )
        self.name = name


class DuplicateDocumentError(SchemaError):
    """Raised when a document is loaded twice into the same registry."""


class VersionError(SchemaError):
    """Raised when a document version is missing, malformed or unsupported."""


class SchemaIOError(SchemaError):
    """Raised when a schema file is missing or unreadable."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message, reason="file not found")
        self.path = path


class DependencyCycleError(SchemaError):
    """Raised when cyclic dependencies are configured as an error."""

    def __init__(self, document: str, cycle: list[str]) -> None:
        super().__init__(
            f"Schema document '{document}' depends on itself through "
            + " -> ".join(cycle),
            reason="dependency cycle",
            document=document,
        )
        self.cycle = cycle


class UnknownTypeError(ObjSchemaError):
    """Raised when a type name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown type: {name}")
        self.name = name


class UnsupportedTypeError(ObjSchemaError):
    """Raised when a type has no binary codec."""


class ConversionError(ObjSchemaError):
    """Raised when a payload cannot be converted to or from an object."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
