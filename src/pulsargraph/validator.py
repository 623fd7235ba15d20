from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx

from .ir import FieldKind, FieldSpec, Graph, GraphNode, NodeDefinition, NodeErrors
from .project import load_project
from .registry import DefinitionRegistry

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _fmt(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


def _constraint_messages(name: str, spec: FieldSpec, value: Any) -> List[str]:
    messages: List[str] = []
    rules = spec.validation

    if spec.kind == FieldKind.ENUM:
        if spec.options and str(value) not in spec.options:
            messages.append(f'Field "{name}" must be one of: {", ".join(spec.options)}')
        return messages

    if spec.kind == FieldKind.NUMBER:
        if isinstance(value, bool):
            return [f'Field "{name}" must be a number']
        try:
            number = float(value)
        except (TypeError, ValueError):
            return [f'Field "{name}" must be a number']
        if rules and rules.min is not None and number < rules.min:
            messages.append(f'Field "{name}" must be >= {_fmt(rules.min)}')
        if rules and rules.max is not None and number > rules.max:
            messages.append(f'Field "{name}" must be <= {_fmt(rules.max)}')
        return messages

    if rules is None or spec.kind == FieldKind.BOOLEAN:
        return messages
    text = str(value)
    if rules.min_length is not None and len(text) < rules.min_length:
        messages.append(f'Field "{name}" must be at least {rules.min_length} characters')
    if rules.max_length is not None and len(text) > rules.max_length:
        messages.append(f'Field "{name}" must be at most {rules.max_length} characters')
    if rules.pattern is not None and not re.fullmatch(rules.pattern, text):
        messages.append(f'Field "{name}" does not match pattern {rules.pattern}')
    return messages


def _node_messages(node: GraphNode, definition: NodeDefinition) -> List[str]:
    messages: List[str] = []
    # 1) Required fields
    for name, spec in definition.fields.items():
        if spec.required and _is_empty(node.fields.get(name)):
            messages.append(f'Field "{name}" is required')

    # 2) Definition-specific hook
    if definition.validation is not None:
        messages.extend(definition.validation(node))

    # 3) Declared constraints on any value that is set, zero included
    for name, spec in definition.fields.items():
        value = node.fields.get(name)
        if not _is_unset(value):
            messages.extend(_constraint_messages(name, spec, value))
    return messages


def _connection_messages(graph: Graph, definitions: Dict[str, Optional[NodeDefinition]]
                         ) -> Dict[str, List[str]]:
    messages: Dict[str, List[str]] = {n.id: [] for n in graph.nodes}

    # 1) Required inputs are wired
    connected = {(e.target, e.target_input) for e in graph.edges}
    for node in graph.nodes:
        definition = definitions.get(node.id)
        if definition is None:
            continue
        for pin in definition.pins.inputs:
            if not pin.optional and (node.id, pin.name) not in connected:
                messages[node.id].append(f'Required input "{pin.name}" is not connected')

    # 2) Edge endpoints resolve to declared pins of matching type
    for e in graph.edges:
        if e.source not in messages or e.target not in messages:
            for nid in (e.source, e.target):
                if nid in messages:
                    messages[nid].append(f'Edge {e.id} references a missing node')
            continue
        source_def, target_def = definitions.get(e.source), definitions.get(e.target)
        source_pin = source_def.pins.output(e.source_output) if source_def else None
        target_pin = target_def.pins.input(e.target_input) if target_def else None
        if source_def is not None and source_pin is None:
            messages[e.source].append(f'Unknown output pin "{e.source_output}" on {e.source}')
        if target_def is not None and target_pin is None:
            messages[e.target].append(f'Unknown input pin "{e.target_input}"')
        if source_pin and target_pin and source_pin.type != target_pin.type:
            messages[e.target].append(
                f"Type mismatch: cannot connect {source_pin.type} to {target_pin.type}")

    # 3) Acyclic
    g = graph.digraph()
    order = [n.id for n in graph.nodes]
    for component in nx.strongly_connected_components(g):
        if len(component) == 1:
            (only,) = component
            if not g.has_edge(only, only):
                continue
        members = [nid for nid in order if nid in component]
        if not members:
            continue
        cycle = nx.find_cycle(g.subgraph(component), source=members[0])
        path = " -> ".join([cycle[0][0]] + [v for _, v in cycle])
        for nid in members:
            messages[nid].append(f"Node is part of a cycle: {path}")

    return messages


def validate(graph: Graph, registry: DefinitionRegistry) -> List[NodeErrors]:
    """Check ``graph`` against the definitions in ``registry``.

    Returns one entry per node that has problems, in node order. The graph
    is not modified.
    """
    definitions = {n.id: registry.get(n.type) for n in graph.nodes}
    connection_messages = _connection_messages(graph, definitions)

    errors: List[NodeErrors] = []
    for node in graph.nodes:
        definition = definitions[node.id]
        if definition is None:
            messages = [f'Unknown node type "{node.type}"']
        else:
            messages = _node_messages(node, definition)
        messages.extend(connection_messages.get(node.id, []))
        if messages:
            errors.append(NodeErrors(node_id=node.id, messages=messages))

    logger.debug("Validated %d node(s): %d with errors", len(graph.nodes), len(errors))
    return errors


def validate_project_file(path: Path, registry: DefinitionRegistry) -> Tuple[bool, List[str]]:
    graph = load_project(path).graph
    errors = validate(graph, registry)
    if not errors:
        return True, [f"OK: {len(graph.nodes)} node(s) and {len(graph.edges)} edge(s) are valid."]
    messages = [f"ERR: {err.node_id}: {m}" for err in errors for m in err.messages]
    return False, messages
