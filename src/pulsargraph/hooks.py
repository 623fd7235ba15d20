"""Validation hooks that definition documents can name with ``validation:``."""

from __future__ import annotations
import re
from typing import List

from .ir import GraphNode
from .registry import validation_hook

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RUST_KEYWORDS = {
    "as", "break", "const", "continue", "crate", "else", "enum", "extern",
    "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct",
    "super", "trait", "true", "type", "unsafe", "use", "where", "while",
    "async", "await", "dyn",
}

_LITERAL_CHECKS = {
    "i32": re.compile(r"^-?\d+$"),
    "i64": re.compile(r"^-?\d+$"),
    "f32": re.compile(r"^-?\d+(\.\d+)?$"),
    "f64": re.compile(r"^-?\d+(\.\d+)?$"),
    "bool": re.compile(r"^(true|false)$"),
}


@validation_hook("identifier")
def check_identifier(node: GraphNode) -> List[str]:
    name = str(node.fields.get("name") or "")
    if not name:
        return []
    if not _IDENTIFIER.match(name):
        return [f'"{name}" is not a valid identifier']
    if name in RUST_KEYWORDS:
        return [f'"{name}" is a reserved keyword']
    return []


@validation_hook("typed_literal")
def check_typed_literal(node: GraphNode) -> List[str]:
    """The ``value`` field must be a literal of the declared ``type``."""
    messages = check_identifier(node)
    value = node.fields.get("value")
    pattern = _LITERAL_CHECKS.get(str(node.fields.get("type") or ""))
    if pattern is None or value in (None, ""):
        return messages
    if isinstance(value, bool):
        value = "true" if value else "false"
    if not pattern.match(str(value)):
        messages.append(f'Value "{value}" is not a valid {node.fields["type"]} literal')
    return messages
