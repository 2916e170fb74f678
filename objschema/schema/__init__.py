"""Schema model: type catalog, members, documents and the registry."""

from .types import *
from .version import SUPPORTED_VERSION as SUPPORTED_VERSION
from .version import SemanticVersion as SemanticVersion
from .version import is_valid_version as is_valid_version
from .member import EnumValue as EnumValue
from .member import Member as Member
from .document import SchemaDocument as SchemaDocument
from .document import is_valid_document as is_valid_document
from .registry import CyclePolicy as CyclePolicy
from .registry import SchemaRegistry as SchemaRegistry
