from __future__ import annotations
from typing import Optional

import networkx as nx

from .generator import emission_order
from .ir import Graph
from .registry import DefinitionRegistry


def ascii_plan(graph: Graph, registry: Optional[DefinitionRegistry] = None) -> str:
    try:
        order = emission_order(graph)
        lines = ["# ASCII Plan (emission order)"]
    except nx.NetworkXUnfeasible:
        order = list(graph.nodes)
        lines = ["# ASCII Plan (graph order; cycle detected)"]
    for i, node in enumerate(order, 1):
        category = ""
        if registry is not None and node.type in registry:
            category = f" <{registry.get(node.type).category}>"
        lines.append(f"{i:02d}. {node.id} [{node.type}]{category}")
        for e in graph.outgoing(node.id):
            lines.append(f"    └─▶ {e.target}  ({e.source_output}->{e.target_input})")
    return "\n".join(lines)
