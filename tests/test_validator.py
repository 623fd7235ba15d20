from pathlib import Path

from pulsargraph.ir import Graph, GraphEdge, GraphNode
from pulsargraph.project import save_project
from pulsargraph.validator import validate, validate_project_file


SWITCHES = """\
name: Switches
category: Test
description: Required number and boolean
fields:
  level:
    type: number
    label: Level
    required: true
  enabled:
    type: boolean
    label: Enabled
    required: true
pins: {}
template: "// {{level}} {{enabled}}"
"""


def _messages(errors):
    return {e.node_id: e.messages for e in errors}


def test_required_field_without_default_is_reported(store, registry):
    node = store.add_node("Named")
    errors = validate(store.export_graph(), registry)
    assert _messages(errors) == {node.id: ['Field "title" is required']}


def test_zero_and_blank_values_count_as_empty(store, registry):
    node = store.add_node("Named")
    store.update_node(node.id, {"title": "   "})
    assert _messages(validate(store.export_graph(), registry))[node.id] == ['Field "title" is required']


def test_zero_and_false_count_as_empty_for_required_fields(registry):
    registry.load(SWITCHES)
    node = GraphNode(id="s1", type="Switches", fields={"level": 0, "enabled": False})
    assert _messages(validate(Graph(nodes=[node]), registry)) == {
        "s1": ['Field "level" is required', 'Field "enabled" is required'],
    }


def test_zero_is_still_checked_against_min(builtin_registry):
    node = GraphNode(id="loop", type="While Loop",
                     fields={"body": "tick();", "max_iterations": 0})
    messages = _messages(validate(Graph(nodes=[node]), builtin_registry))["loop"]
    assert 'Field "max_iterations" must be >= 1' in messages


def test_zero_on_optional_number_is_checked_against_min(store, registry):
    node = store.add_node("Named")
    store.update_node(node.id, {"title": "x", "count": 0})
    assert _messages(validate(store.export_graph(), registry))[node.id] == ['Field "count" must be >= 1']


def test_connected_pair_is_valid(store, registry):
    a = store.add_node("Source")
    b = store.add_node("Sink")
    store.add_edge(a.id, "out", b.id, "in")
    assert validate(store.export_graph(), registry) == []


def test_missing_required_input_is_reported_once(store, registry):
    store.add_node("Source")
    b = store.add_node("Sink")
    errors = validate(store.export_graph(), registry)
    assert len(errors) == 1
    assert errors[0].node_id == b.id
    assert errors[0].messages == ['Required input "in" is not connected']


def test_type_mismatch_names_both_types(store, registry):
    a = store.add_node("Source")
    t = store.add_node("Text Sink")
    store.add_edge(a.id, "out", t.id, "in")
    errors = validate(store.export_graph(), registry)
    assert _messages(errors) == {t.id: ["Type mismatch: cannot connect number to string"]}


def test_custom_hook_messages_follow_required_checks(store, registry):
    registry.attach_validation("Named", lambda node: ["first custom", "second custom"])
    node = store.add_node("Named")
    assert _messages(validate(store.export_graph(), registry))[node.id] == [
        'Field "title" is required', "first custom", "second custom",
    ]


def test_node_and_connection_errors_coexist(store, registry):
    registry.attach_validation("Sink", lambda node: ["hook says no"])
    b = store.add_node("Sink")
    assert _messages(validate(store.export_graph(), registry))[b.id] == [
        "hook says no", 'Required input "in" is not connected',
    ]


def test_entries_follow_node_order(store, registry):
    first = store.add_node("Sink")
    store.add_node("Source")
    last = store.add_node("Named")
    assert [e.node_id for e in validate(store.export_graph(), registry)] == [first.id, last.id]


def test_field_constraints(store, registry):
    node = store.add_node("Named")
    store.update_node(node.id, {"title": "t", "count": 11})
    assert _messages(validate(store.export_graph(), registry))[node.id] == ['Field "count" must be <= 10']
    store.update_node(node.id, {"count": "many"})
    assert _messages(validate(store.export_graph(), registry))[node.id] == ['Field "count" must be a number']


def test_builtin_constraints_and_hooks(builtin_registry):
    graph = Graph(nodes=[
        GraphNode(id="v", type="Number Variable", fields={"name": "fn", "value": 0}),
        GraphNode(id="f", type="Function", fields={"name": "main", "returnType": "u8", "body": "1"}),
        GraphNode(id="c", type="Typed Constant", fields={"name": "LIMIT", "type": "i32", "value": "abc"}),
        GraphNode(id="s", type="String Literal", fields={"text": 'say "hi"'}),
    ])
    assert _messages(validate(graph, builtin_registry)) == {
        "v": ['"fn" is a reserved keyword'],
        "f": ['Field "returnType" must be one of: f64, i32, bool, String'],
        "c": ['Value "abc" is not a valid i32 literal'],
        "s": ['Field "text" does not match pattern [^"]*'],
    }


def test_unknown_pins_are_reported(store, registry):
    a = store.add_node("Source")
    b = store.add_node("Sink")
    store.add_edge(a.id, "nope", b.id, "in")
    store.add_edge(a.id, "out", b.id, "wat")
    assert _messages(validate(store.export_graph(), registry)) == {
        a.id: [f'Unknown output pin "nope" on {a.id}'],
        b.id: ['Unknown input pin "wat"'],
    }


def test_cycles_are_rejected(store, registry):
    r1 = store.add_node("Relay")
    r2 = store.add_node("Relay")
    store.add_edge(r1.id, "out", r2.id, "in")
    store.add_edge(r2.id, "out", r1.id, "in")
    path = f"{r1.id} -> {r2.id} -> {r1.id}"
    assert _messages(validate(store.export_graph(), registry)) == {
        r1.id: [f"Node is part of a cycle: {path}"],
        r2.id: [f"Node is part of a cycle: {path}"],
    }


def test_self_loop_is_a_cycle(store, registry):
    r = store.add_node("Relay")
    store.add_edge(r.id, "out", r.id, "in")
    assert _messages(validate(store.export_graph(), registry)) == {
        r.id: [f"Node is part of a cycle: {r.id} -> {r.id}"],
    }


def test_unknown_node_type(registry):
    graph = Graph(nodes=[GraphNode(id="x", type="Ghost")])
    assert _messages(validate(graph, registry)) == {"x": ['Unknown node type "Ghost"']}


def test_validate_does_not_mutate(store, registry):
    store.add_node("Named")
    store.add_node("Sink")
    before = store.export_graph()
    validate(store.snapshot(), registry)
    assert store.export_graph() == before


def test_validate_project_file(tmp_path: Path, registry):
    graph = Graph(
        nodes=[GraphNode(id="a", type="Source"), GraphNode(id="b", type="Sink")],
        edges=[GraphEdge(id="e", source="a", source_output="out", target="b", target_input="in")],
    )
    path = tmp_path / "ok.yaml"
    save_project(graph, path)
    ok, messages = validate_project_file(path, registry)
    assert ok, messages

    graph.edges = []
    save_project(graph, path)
    ok, messages = validate_project_file(path, registry)
    assert not ok
    assert messages == ['ERR: b: Required input "in" is not connected']
