from .errors import (
    DefinitionParseError,
    GeneratorInternalError,
    GraphIntegrityError,
    PulsarGraphError,
    UnknownFieldError,
    UnknownNodeError,
    UnknownNodeTypeError,
)
from .ir import (
    FieldKind,
    FieldSpec,
    Graph,
    GraphEdge,
    GraphNode,
    NodeDefinition,
    NodeErrors,
    Pin,
    Position,
    ProjectFile,
)
from .registry import DefinitionRegistry, validation_hook
from . import hooks  # noqa: F401  (registers the built-in validation hooks)
from .validator import validate
from .generator import generate, is_error_report
from .store import GraphStore

__version__ = "0.1.0"
