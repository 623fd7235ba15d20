import pytest

from pulsargraph.registry import DefinitionRegistry
from pulsargraph.store import GraphStore

CORE_DEFINITIONS = """\
name: Source
category: Test
description: Emits a number
fields: {}
pins:
  outputs:
    - name: out
      type: number
template: "42"
---
name: Sink
category: Test
description: Consumes a number
fields: {}
pins:
  inputs:
    - name: in
      type: number
template: "consume({{in}});"
---
name: Text Sink
category: Test
description: Consumes a string
fields: {}
pins:
  inputs:
    - name: in
      type: string
template: "say({{in}});"
---
name: Relay
category: Flow
description: Passes a number through
fields: {}
pins:
  inputs:
    - name: in
      type: number
  outputs:
    - name: out
      type: number
template: "{{in}}"
---
name: Named
category: Flow
description: Has a required field without default
fields:
  title:
    type: text
    label: Title
    required: true
  count:
    type: number
    label: Count
    default: 3
    validation:
      min: 1
      max: 10
pins: {}
template: "// {{title}} x{{count}}"
"""


@pytest.fixture
def registry() -> DefinitionRegistry:
    r = DefinitionRegistry()
    r.load(CORE_DEFINITIONS)
    return r


@pytest.fixture
def builtin_registry() -> DefinitionRegistry:
    r = DefinitionRegistry()
    r.load_builtin()
    return r


@pytest.fixture
def store(registry) -> GraphStore:
    return GraphStore(registry)
