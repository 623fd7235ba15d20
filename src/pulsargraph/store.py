from __future__ import annotations
import copy
import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import networkx as nx

from .config import Settings, get_settings
from .errors import GraphIntegrityError, UnknownFieldError, UnknownNodeError
from .generator import generate
from .ir import Graph, GraphEdge, GraphNode, NodeErrors, Position
from .registry import DefinitionRegistry
from .validator import validate

logger = logging.getLogger(__name__)

PositionLike = Union[Position, Tuple[float, float], Mapping[str, float], None]


def _as_position(position: PositionLike) -> Position:
    if position is None:
        return Position()
    if isinstance(position, Position):
        return position.model_copy()
    if isinstance(position, Mapping):
        return Position(**position)
    x, y = position
    return Position(x=x, y=y)


class GraphStore:
    """Owner of the node and edge collections being edited.

    Every mutation goes through this object. Nothing here checks pins or
    types; a graph may sit in an invalid state until :meth:`validate` is
    asked about it. Values handed out are copies, so callers never hold
    references into the store.
    """

    def __init__(self, registry: DefinitionRegistry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or get_settings()
        self._nodes: Dict[str, GraphNode] = {}
        self._edges: Dict[str, GraphEdge] = {}
        self._selected_node_id: Optional[str] = None
        self._highlighted: List[str] = []
        self.validation_errors: List[NodeErrors] = []

    # ── nodes ─────────────────────────────────────────────────────────

    def add_node(self, type_name: str, position: PositionLike = None) -> GraphNode:
        definition = self.registry.require(type_name)
        node = GraphNode(
            id=self._new_id("node"),
            type=definition.name,
            position=_as_position(position),
            fields=copy.deepcopy(definition.initial_fields()),
        )
        self._nodes[node.id] = node
        logger.debug("Added node %s (%s)", node.id, type_name)
        return node.model_copy(deep=True)

    def update_node(self, node_id: str, fields: Mapping[str, Any]) -> Optional[GraphNode]:
        """Merge ``fields`` into the node's values; ``None`` if no such node."""
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("update_node: no node %s", node_id)
            return None
        definition = self.registry.get(node.type)
        if definition is not None:
            unknown = set(fields) - set(definition.fields)
            if unknown:
                raise UnknownFieldError(node_id, unknown)
        node.fields.update(copy.deepcopy(dict(fields)))
        return node.model_copy(deep=True)

    def move_node(self, node_id: str, position: PositionLike) -> Optional[GraphNode]:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        node.position = _as_position(position)
        return node.model_copy(deep=True)

    def delete_node(self, node_id: str) -> bool:
        if node_id not in self._nodes:
            return False
        del self._nodes[node_id]
        self._edges = {
            eid: e for eid, e in self._edges.items()
            if e.source != node_id and e.target != node_id
        }
        if self._selected_node_id == node_id:
            self._selected_node_id = None
        self._highlighted = [nid for nid in self._highlighted if nid != node_id]
        logger.debug("Deleted node %s", node_id)
        return True

    def duplicate_node(self, node_id: str) -> Optional[GraphNode]:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        offset = self.settings.duplicate_offset
        clone = node.model_copy(deep=True)
        clone.id = self._new_id("node")
        clone.position = Position(x=node.position.x + offset, y=node.position.y + offset)
        self._nodes[clone.id] = clone
        logger.debug("Duplicated node %s as %s", node_id, clone.id)
        return clone.model_copy(deep=True)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node is not None else None

    @property
    def nodes(self) -> List[GraphNode]:
        return [n.model_copy(deep=True) for n in self._nodes.values()]

    # ── edges ─────────────────────────────────────────────────────────

    def add_edge(self, source: str, source_output: str, target: str, target_input: str,
                 edge_id: Optional[str] = None) -> GraphEdge:
        self._require_nodes(source, target)
        if edge_id is not None and edge_id in self._edges:
            raise GraphIntegrityError(f"Duplicate edge id '{edge_id}'")
        edge = GraphEdge(
            id=edge_id or self._new_id("edge"),
            source=source,
            source_output=source_output,
            target=target,
            target_input=target_input,
        )
        self._edges[edge.id] = edge
        logger.debug("Connected %s.%s -> %s.%s", source, source_output, target, target_input)
        return edge.model_copy()

    def update_edge(self, edge_id: str, *, source: Optional[str] = None,
                    source_output: Optional[str] = None, target: Optional[str] = None,
                    target_input: Optional[str] = None) -> Optional[GraphEdge]:
        edge = self._edges.get(edge_id)
        if edge is None:
            return None
        changes = {
            k: v for k, v in {
                "source": source, "source_output": source_output,
                "target": target, "target_input": target_input,
            }.items() if v is not None
        }
        updated = edge.model_copy(update=changes)
        self._require_nodes(updated.source, updated.target)
        self._edges[edge_id] = updated
        return updated.model_copy()

    def delete_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        edge = self._edges.get(edge_id)
        return edge.model_copy() if edge is not None else None

    @property
    def edges(self) -> List[GraphEdge]:
        return [e.model_copy() for e in self._edges.values()]

    # ── selection & highlighting ──────────────────────────────────────

    def set_selected_node(self, node_id: Optional[str]):
        self._selected_node_id = node_id

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selected_node_id

    def toggle_highlight(self, node_id: str):
        if node_id in self._highlighted:
            self._highlighted.remove(node_id)
        else:
            self._highlighted.append(node_id)

    @property
    def highlighted_nodes(self) -> List[str]:
        return list(self._highlighted)

    # ── whole graph ───────────────────────────────────────────────────

    def clear(self):
        self._nodes = {}
        self._edges = {}
        self._reset_ui_state()

    def import_graph(self, nodes: Iterable[Union[GraphNode, Mapping[str, Any]]],
                     edges: Iterable[Union[GraphEdge, Mapping[str, Any]]]):
        """Replace the whole graph. Nothing changes if the input is inconsistent."""
        new_nodes: Dict[str, GraphNode] = {}
        for n in nodes:
            node = GraphNode.model_validate(n).model_copy(deep=True)
            if node.id in new_nodes:
                raise GraphIntegrityError(f"Duplicate node id '{node.id}'")
            new_nodes[node.id] = node
        new_edges: Dict[str, GraphEdge] = {}
        for e in edges:
            edge = GraphEdge.model_validate(e).model_copy()
            if edge.id in new_edges:
                raise GraphIntegrityError(f"Duplicate edge id '{edge.id}'")
            missing = [nid for nid in (edge.source, edge.target) if nid not in new_nodes]
            if missing:
                raise GraphIntegrityError(
                    f"Edge '{edge.id}' references missing node(s): {', '.join(missing)}")
            new_edges[edge.id] = edge
        self._nodes = new_nodes
        self._edges = new_edges
        self._reset_ui_state()
        logger.debug("Imported %d node(s), %d edge(s)", len(new_nodes), len(new_edges))

    def export_graph(self) -> Graph:
        return self.snapshot().model_copy(deep=True)

    def snapshot(self) -> Graph:
        """Read-only view over the live collections for one validate/generate pass."""
        return Graph(nodes=list(self._nodes.values()), edges=list(self._edges.values()))

    # ── graph queries ─────────────────────────────────────────────────

    def connected_nodes(self, node_id: str, direction: str = "outgoing") -> List[str]:
        g = self.snapshot().digraph()
        if node_id not in g:
            return []
        if direction == "outgoing":
            found = set(g.successors(node_id))
        elif direction == "incoming":
            found = set(g.predecessors(node_id))
        elif direction == "both":
            found = set(g.successors(node_id)) | set(g.predecessors(node_id))
        else:
            raise ValueError(f"Unknown direction '{direction}'. Use one of: outgoing, incoming, both")
        return [nid for nid in self._nodes if nid in found]

    def dependencies(self, node_id: str) -> List[str]:
        """Every node upstream of ``node_id``, in graph order."""
        g = self.snapshot().digraph()
        if node_id not in g:
            return []
        upstream = nx.ancestors(g, node_id)
        return [nid for nid in self._nodes if nid in upstream]

    # ── validation & generation ───────────────────────────────────────

    def validate(self) -> List[NodeErrors]:
        self.validation_errors = validate(self.snapshot(), self.registry)
        return self.validation_errors

    def generate(self) -> str:
        return generate(self.snapshot(), self.registry, self.settings)

    # ── internals ─────────────────────────────────────────────────────

    def _reset_ui_state(self):
        self._selected_node_id = None
        self._highlighted = []
        self.validation_errors = []

    def _require_nodes(self, *node_ids: str):
        for nid in node_ids:
            if nid not in self._nodes:
                raise UnknownNodeError(nid)

    def _new_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}_{uuid.uuid4().hex[:9]}"
            if candidate not in self._nodes and candidate not in self._edges:
                return candidate

    def __len__(self) -> int:
        return len(self._nodes)
