"""objschema - Object schema model, code generator and message converters."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("objschema")
except PackageNotFoundError:
    __version__ = "(local)"
