from __future__ import annotations
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldKind(str, Enum):
    TEXT = "text"
    MULTILINE = "multiline"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"


# spellings found in hand-written definition files
_KIND_ALIASES = {
    "select": FieldKind.ENUM,
    "string": FieldKind.TEXT,
    "bool": FieldKind.BOOLEAN,
    "int": FieldKind.NUMBER,
    "integer": FieldKind.NUMBER,
    "float": FieldKind.NUMBER,
}


class FieldConstraints(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    pattern: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def _compile_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid pattern {v!r}: {e}") from e
        return v


class FieldSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: FieldKind = Field(alias="type")
    label: str
    description: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    default: Any = None
    required: bool = False
    validation: Optional[FieldConstraints] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _KIND_ALIASES.get(v.lower(), v.lower())
        return v

    def initial_value(self) -> Any:
        return "" if self.default is None else self.default


class Pin(BaseModel):
    name: str
    type: str
    description: Optional[str] = None
    optional: bool = False


class PinSet(BaseModel):
    inputs: List[Pin] = Field(default_factory=list)
    outputs: List[Pin] = Field(default_factory=list)

    @field_validator("inputs", "outputs", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @model_validator(mode="after")
    def _unique_names(self) -> "PinSet":
        for side in ("inputs", "outputs"):
            seen = set()
            for pin in getattr(self, side):
                if pin.name in seen:
                    raise ValueError(f"duplicate {side[:-1]} pin '{pin.name}'")
                seen.add(pin.name)
        return self

    def input(self, name: str) -> Optional[Pin]:
        return next((p for p in self.inputs if p.name == name), None)

    def output(self, name: str) -> Optional[Pin]:
        return next((p for p in self.outputs if p.name == name), None)


class NodeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    description: str
    fields: Dict[str, FieldSpec]
    pins: PinSet
    template: str
    # attached in code only; never part of a serialized definition
    validation: Optional[Callable[["GraphNode"], List[str]]] = Field(default=None, exclude=True)

    @field_validator("fields", mode="before")
    @classmethod
    def _fields_none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("pins", mode="before")
    @classmethod
    def _pins_none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    def initial_fields(self) -> Dict[str, Any]:
        return {name: spec.initial_value() for name, spec in self.fields.items()}

    def __eq__(self, other: object) -> bool:
        # the attached hook is not part of the definition's identity
        if not isinstance(other, NodeDefinition):
            return NotImplemented
        return self.model_dump() == other.model_dump()


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class GraphNode(BaseModel):
    id: str
    type: str
    position: Position = Field(default_factory=Position)
    fields: Dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    id: str
    source: str
    source_output: str
    target: str
    target_input: str


class Graph(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def node_map(self) -> Dict[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    def incoming(self, node_id: str) -> List[GraphEdge]:
        return [e for e in self.edges if e.target == node_id]

    def outgoing(self, node_id: str) -> List[GraphEdge]:
        return [e for e in self.edges if e.source == node_id]

    def digraph(self) -> nx.DiGraph:
        g = nx.DiGraph()
        g.add_nodes_from(n.id for n in self.nodes)
        for e in self.edges:
            g.add_edge(e.source, e.target)
        return g


class NodeErrors(BaseModel):
    node_id: str
    messages: List[str]


class ProjectFile(BaseModel):
    version: str = "1.0"
    graph: Graph = Field(default_factory=Graph)
    metadata: Dict[str, Any] = Field(default_factory=dict)


NodeDefinition.model_rebuild()
