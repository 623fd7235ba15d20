import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .errors import DefinitionParseError, PulsarGraphError
from .generator import generate as generate_source, is_error_report
from .ir import Graph, ProjectFile
from .project import load_project, open_into, save_project, save_store
from .registry import DefinitionRegistry
from .store import GraphStore
from .validator import validate_project_file
from .visualize import ascii_plan

app = typer.Typer(no_args_is_help=True, help="pulsargraph CLI — Blueprint node graphs → Rust source")

DefsOption = typer.Option(None, "--defs", help="Extra definition file or folder (.yaml).")


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Logging level (default from PULSARGRAPH_LOG_LEVEL).")):
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _registry(defs: Optional[Path]) -> DefinitionRegistry:
    settings = get_settings()
    registry = DefinitionRegistry()
    try:
        if settings.load_builtin_definitions:
            registry.load_builtin()
        for extra in (settings.definitions_path, defs):
            if extra is None:
                continue
            if extra.is_dir():
                registry.load_directory(extra)
            else:
                registry.load_file(extra)
    except DefinitionParseError as e:
        rprint(Panel.fit(f"[bold red]Bad node definition[/]\n{e}"))
        raise typer.Exit(code=2)
    return registry


def _open(file: Path, defs: Optional[Path]) -> Tuple[GraphStore, ProjectFile]:
    store = GraphStore(_registry(defs))
    return store, open_into(store, file)


def _parse_assignments(assignments: List[str]) -> dict:
    fields = {}
    for item in assignments:
        key, sep, raw = item.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected key=value, got '{item}'")
        fields[key.strip()] = yaml.safe_load(raw) if raw.strip() else ""
    return fields


def _endpoint(value: str):
    node_id, sep, pin = value.rpartition(".")
    if not sep or not node_id or not pin:
        raise typer.BadParameter(f"Expected NODE_ID.PIN, got '{value}'")
    return node_id, pin


@app.command()
def definitions(defs: Optional[Path] = DefsOption):
    """List the available node definitions by category."""
    registry = _registry(defs)
    table = Table(title="Node Definitions", show_lines=True)
    table.add_column("Category", style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Inputs")
    table.add_column("Outputs")
    table.add_column("Description")
    for category, items in registry.by_category().items():
        for d in items:
            table.add_row(
                category, d.name,
                ", ".join(f"{p.name}: {p.type}" for p in d.pins.inputs),
                ", ".join(f"{p.name}: {p.type}" for p in d.pins.outputs),
                d.description,
            )
    rprint(table)


@app.command()
def new(file: Path = typer.Argument(..., help="Project file to create.")):
    """Create an empty project file."""
    if file.exists():
        rprint(Panel.fit(f"[bold red]{file} already exists[/]"))
        raise typer.Exit(code=1)
    file.parent.mkdir(parents=True, exist_ok=True)
    save_project(Graph(), file)
    rprint(Panel.fit(f"Created empty project [cyan]{file}[/]"))


@app.command("add-node")
def add_node(file: Path,
             type_name: str = typer.Argument(..., metavar="TYPE"),
             x: float = typer.Option(0.0, help="Canvas x position."),
             y: float = typer.Option(0.0, help="Canvas y position."),
             set_: List[str] = typer.Option([], "--set", help="Field assignment key=value (repeatable)."),
             defs: Optional[Path] = DefsOption):
    """Add a node of TYPE to the project."""
    store, project = _open(file, defs)
    try:
        node = store.add_node(type_name, (x, y))
        if set_:
            node = store.update_node(node.id, _parse_assignments(set_))
    except PulsarGraphError as e:
        rprint(Panel.fit(f"[bold red]{e}[/]"))
        raise typer.Exit(code=1)
    save_store(store, file, project.metadata)
    rprint(node.id)


@app.command()
def connect(file: Path,
            source: str = typer.Argument(..., help="NODE_ID.OUTPUT"),
            target: str = typer.Argument(..., help="NODE_ID.INPUT"),
            defs: Optional[Path] = DefsOption):
    """Wire an output pin to an input pin."""
    store, project = _open(file, defs)
    (src, src_pin), (dst, dst_pin) = _endpoint(source), _endpoint(target)
    try:
        edge = store.add_edge(src, src_pin, dst, dst_pin)
    except PulsarGraphError as e:
        rprint(Panel.fit(f"[bold red]{e}[/]"))
        raise typer.Exit(code=1)
    save_store(store, file, project.metadata)
    rprint(edge.id)


@app.command()
def validate(file: Path, defs: Optional[Path] = DefsOption):
    """Validate a project (required fields, wiring, pin types, cycles)."""
    ok, messages = validate_project_file(file, _registry(defs))
    table = Table(title="Validation Report", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, m)
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(file: Path, defs: Optional[Path] = DefsOption):
    """Print an ASCII plan of the graph."""
    print(ascii_plan(load_project(file).graph, _registry(defs)))


@app.command()
def generate(file: Path,
             out: Optional[Path] = typer.Option(None, help="Write the source here instead of stdout."),
             defs: Optional[Path] = DefsOption):
    """Compile the project to Rust source."""
    registry = _registry(defs)
    code = generate_source(load_project(file).graph, registry)
    failed = is_error_report(code)
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(code, encoding="utf-8")
        status = "[bold red]Validation failed[/]" if failed else "[bold green]Generated[/]"
        rprint(Panel.fit(f"{status}: wrote [cyan]{out}[/]"))
    else:
        print(code)
    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
