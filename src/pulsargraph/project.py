from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

import yaml

from .ir import Graph, ProjectFile

if TYPE_CHECKING:
    from .store import GraphStore


def load_project(path: Path) -> ProjectFile:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return ProjectFile(**data)


def save_project(graph: Graph, path: Path, metadata: Optional[Dict[str, Any]] = None) -> ProjectFile:
    project = ProjectFile(graph=graph, metadata=metadata or {})
    Path(path).write_text(
        yaml.safe_dump(project.model_dump(mode="json"), sort_keys=False), encoding="utf-8")
    return project


def save_store(store: "GraphStore", path: Path, metadata: Optional[Dict[str, Any]] = None) -> ProjectFile:
    return save_project(store.export_graph(), path, metadata)


def open_into(store: "GraphStore", path: Path) -> ProjectFile:
    project = load_project(path)
    store.import_graph(project.graph.nodes, project.graph.edges)
    return project
