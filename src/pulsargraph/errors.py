from __future__ import annotations
from typing import Optional


class PulsarGraphError(Exception):
    """Base class for every error raised by pulsargraph."""


class DefinitionParseError(PulsarGraphError, ValueError):
    """A node-definition document could not be parsed."""

    def __init__(self, message: str, segment: Optional[int] = None):
        self.segment = segment
        prefix = f"document {segment}: " if segment is not None else ""
        super().__init__(f"{prefix}{message}")
        self.raw_message = message


class UnknownNodeTypeError(PulsarGraphError, LookupError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"No definition found for node type: {type_name}")


class UnknownNodeError(PulsarGraphError, LookupError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"No node with id '{node_id}'")


class UnknownFieldError(PulsarGraphError, LookupError):
    def __init__(self, node_id: str, names):
        self.node_id = node_id
        self.names = sorted(names)
        super().__init__(f"Node '{node_id}' has no field(s): {', '.join(self.names)}")


class GraphIntegrityError(PulsarGraphError, ValueError):
    """An imported graph breaks a referential invariant."""


class GeneratorInternalError(PulsarGraphError, RuntimeError):
    """A template references something its definition does not declare."""
