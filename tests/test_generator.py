import pytest

from pulsargraph.config import Settings
from pulsargraph.errors import GeneratorInternalError
from pulsargraph.generator import emission_order, generate, is_error_report
from pulsargraph.store import GraphStore

BROKEN = """\
name: Broken
category: Test
description: Template names something undeclared
fields: {}
pins: {}
template: "call({{missing}});"
"""


def test_connected_pair_generates_source(store, registry):
    a = store.add_node("Source")
    b = store.add_node("Sink")
    store.add_edge(a.id, "out", b.id, "in")
    code = generate(store.snapshot(), registry)
    assert not is_error_report(code)
    assert code == (
        "// Generated Rust Code\n\n"
        f"let {a.id}_out = 42;\n\n"
        f"consume({a.id}_out);\n"
    )


def test_invalid_graph_yields_comment_report(store, registry):
    store.add_node("Source")
    b = store.add_node("Sink")
    code = generate(store.snapshot(), registry)
    assert is_error_report(code)
    assert code == (
        "// Fix validation errors before generating code\n\n"
        f"// Node {b.id}:\n"
        '// - Required input "in" is not connected'
    )
    assert all(line.startswith("//") for line in code.splitlines() if line)


def test_dependencies_are_emitted_first(store, registry):
    b = store.add_node("Sink")
    r = store.add_node("Relay")
    a = store.add_node("Source")
    store.add_edge(a.id, "out", r.id, "in")
    store.add_edge(r.id, "out", b.id, "in")
    assert [n.id for n in emission_order(store.snapshot())] == [a.id, r.id, b.id]
    code = store.generate()
    assert code.index(f"let {a.id}_out") < code.index(f"let {r.id}_out = {a.id}_out;")
    assert code.rstrip().endswith(f"consume({r.id}_out);")


def test_unconnected_nodes_keep_graph_order(store, registry):
    first = store.add_node("Named")
    second = store.add_node("Source")
    store.update_node(first.id, {"title": "hello"})
    assert [n.id for n in emission_order(store.snapshot())] == [first.id, second.id]
    assert store.generate().splitlines()[2] == "// hello x3"


def test_unresolvable_placeholder_fails_loudly(registry):
    registry.load(BROKEN)
    store = GraphStore(registry)
    store.add_node("Broken")
    with pytest.raises(GeneratorInternalError, match="missing"):
        store.generate()


HYPHENATED = """\
name: Hyphenated
category: Test
description: Field name that is not an identifier
fields:
  my-field:
    type: text
    label: Mine
    default: hello
pins: {}
template: "say({{my-field}});"
"""


def test_non_identifier_field_name_is_substituted(registry):
    registry.load(HYPHENATED)
    store = GraphStore(registry)
    store.add_node("Hyphenated")
    assert "say(hello);" in store.generate()


@pytest.mark.parametrize("template", [
    "call({{inputs.a.b}});",
    "call({{ 1x }});",
    "call({{}});",
    "call({{in-put}});",
])
def test_malformed_placeholder_fails_loudly(registry, template):
    registry.load(BROKEN.replace('"call({{missing}});"', f'"{template}"'))
    store = GraphStore(registry)
    store.add_node("Broken")
    with pytest.raises(GeneratorInternalError, match="unknown placeholder"):
        store.generate()


def test_custom_comment_prefix(store, registry):
    store.add_node("Sink")
    settings = Settings(comment_prefix="#", error_header="errors")
    code = generate(store.snapshot(), registry, settings)
    assert code.startswith("# errors\n")
    assert is_error_report(code, settings)
    assert not is_error_report(code)


def test_builtin_graph_compiles(builtin_registry):
    store = GraphStore(builtin_registry)
    x = store.add_node("Constant")
    y = store.add_node("Constant")
    store.update_node(y.id, {"value": 2.5})
    add = store.add_node("Add")
    out = store.add_node("Print Number")
    store.update_node(out.id, {"label": "sum = "})
    store.add_edge(x.id, "value", add.id, "a")
    store.add_edge(y.id, "value", add.id, "b")
    store.add_edge(add.id, "result", out.id, "value")

    code = store.generate()
    assert not is_error_report(code)
    assert f"let {x.id}_value = 0_f64;" in code
    assert f"let {y.id}_value = 2.5_f64;" in code
    assert f"let {add.id}_result = {x.id}_value + {y.id}_value;" in code
    assert f'println!("sum = {{}}", {add.id}_result);' in code


def test_explicit_output_placeholders_are_not_wrapped(builtin_registry):
    store = GraphStore(builtin_registry)
    v = store.add_node("Boolean Variable")
    store.update_node(v.id, {"name": "ready", "value": True})
    n = store.add_node("NOT Gate")
    store.add_edge(v.id, "value", n.id, "input")
    code = store.generate()
    assert f"let mut ready: bool = true;\nlet {v.id}_value = ready;" in code
    assert f"let {n.id}_result = !{v.id}_value;" in code


def test_optional_unconnected_input_uses_placeholder(builtin_registry):
    store = GraphStore(builtin_registry)
    call = store.add_node("Function Call")
    store.update_node(call.id, {"name": "tick"})
    assert f"let {call.id}_result = tick(Default::default());" in store.generate()
