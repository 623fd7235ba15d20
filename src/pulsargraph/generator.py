from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

import networkx as nx

from .config import Settings, get_settings
from .errors import GeneratorInternalError
from .ir import Graph, GraphEdge, GraphNode, NodeDefinition, NodeErrors
from .registry import DefinitionRegistry
from .validator import validate

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}")


def output_identifier(node_id: str, pin: str) -> str:
    return f"{node_id}_{pin}"


def render_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def error_report(errors: List[NodeErrors], settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    p = settings.comment_prefix
    blocks = [
        f"{p} Node {err.node_id}:\n" + "\n".join(f"{p} - {m}" for m in err.messages)
        for err in errors
    ]
    return f"{p} {settings.error_header}\n\n" + "\n\n".join(blocks)


def is_error_report(text: str, settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return text.startswith(f"{settings.comment_prefix} {settings.error_header}")


def emission_order(graph: Graph) -> List[GraphNode]:
    """Dependencies first; otherwise the graph's own node order."""
    index = {n.id: i for i, n in enumerate(graph.nodes)}
    node_map = graph.node_map()
    order = nx.lexicographical_topological_sort(graph.digraph(), key=lambda nid: index.get(nid, len(index)))
    return [node_map[nid] for nid in order if nid in node_map]


class _NodeExpander:
    def __init__(self, node: GraphNode, definition: NodeDefinition,
                 incoming: Dict[str, GraphEdge], settings: Settings):
        self.node = node
        self.definition = definition
        self.incoming = incoming
        self.settings = settings
        self.references_output = False

    def expand(self) -> str:
        code = PLACEHOLDER.sub(self._substitute, self.definition.template).strip()
        outputs = self.definition.pins.outputs
        if len(outputs) == 1 and not self.references_output:
            code = f"let {output_identifier(self.node.id, outputs[0].name)} = {code};"
        return code

    def _substitute(self, match: "re.Match[str]") -> str:
        ref = match.group(1).strip()
        namespace, _, name = ref.rpartition(".")
        if namespace == "fields":
            value = self._field(name)
        elif namespace == "inputs":
            value = self._input(name)
        elif namespace == "outputs":
            value = self._output(name)
        elif namespace == "":
            value = self._field(name)
            if value is None:
                value = self._input(name)
            if value is None:
                value = self._output(name)
            if value is None and name == "id":
                value = self.node.id
        else:
            value = None
        if value is None:
            raise GeneratorInternalError(
                f"Template of '{self.definition.name}' references unknown placeholder "
                f"'{match.group(0)}' (node {self.node.id})")
        return value

    def _field(self, name: str) -> Optional[str]:
        if name not in self.definition.fields:
            return None
        return render_value(self.node.fields.get(name))

    def _input(self, name: str) -> Optional[str]:
        if self.definition.pins.input(name) is None:
            return None
        edge = self.incoming.get(name)
        if edge is None:
            return self.settings.unconnected_input
        return output_identifier(edge.source, edge.source_output)

    def _output(self, name: str) -> Optional[str]:
        if self.definition.pins.output(name) is None:
            return None
        self.references_output = True
        return output_identifier(self.node.id, name)


def generate_code(graph: Graph, registry: DefinitionRegistry, settings: Optional[Settings] = None) -> str:
    """Expand every node's template; the graph must already be valid."""
    settings = settings or get_settings()
    incoming: Dict[str, Dict[str, GraphEdge]] = {}
    for e in graph.edges:
        # first connection into a pin wins
        incoming.setdefault(e.target, {}).setdefault(e.target_input, e)

    chunks = [f"{settings.comment_prefix} {settings.generated_header}\n"]
    for node in emission_order(graph):
        definition = registry.require(node.type)
        expander = _NodeExpander(node, definition, incoming.get(node.id, {}), settings)
        chunks.append(expander.expand() + "\n")
    return "\n".join(chunks)


def generate(graph: Graph, registry: DefinitionRegistry, settings: Optional[Settings] = None) -> str:
    """Compile ``graph`` to source text.

    An invalid graph never raises: the result is a comment block listing
    the problems (see :func:`is_error_report`). A template that names a
    field or pin its definition lacks raises :class:`GeneratorInternalError`.
    """
    settings = settings or get_settings()
    errors = validate(graph, registry)
    if errors:
        logger.info("Graph has %d node(s) with errors; emitting report", len(errors))
        return error_report(errors, settings)
    return generate_code(graph, registry, settings)
