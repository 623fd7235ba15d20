from __future__ import annotations
import logging
import re
from importlib.resources import files
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import yaml
from pydantic import ValidationError

from .errors import DefinitionParseError, UnknownNodeTypeError
from .ir import GraphNode, NodeDefinition

logger = logging.getLogger(__name__)

ValidationHook = Callable[[GraphNode], List[str]]

# name -> hook; definition documents refer to hooks by these names
VALIDATION_HOOKS: Dict[str, ValidationHook] = {}

_DOCUMENT_SEPARATOR = re.compile(r"^---[ \t\r]*$", re.MULTILINE)

BUILTIN_PACKS = ["arithmetic", "control_flow", "variables", "functions", "types"]


def validation_hook(name: str):
    """Register a custom node check under ``name``.

    The hook receives the node being validated and returns a list of
    messages (empty when the node is fine).
    """
    def decorator(fn: ValidationHook) -> ValidationHook:
        VALIDATION_HOOKS[name] = fn
        return fn
    return decorator


def split_documents(text: str) -> List[str]:
    return _DOCUMENT_SEPARATOR.split(text)


def parse_definition(segment: str, index: Optional[int] = None) -> NodeDefinition:
    try:
        data = yaml.safe_load(segment)
    except yaml.YAMLError as e:
        raise DefinitionParseError(str(e), index) from e
    if not isinstance(data, dict):
        raise DefinitionParseError(
            f"expected a mapping, got {type(data).__name__}", index)

    hook_name = data.pop("validation", None)
    if hook_name is not None:
        if not isinstance(hook_name, str):
            raise DefinitionParseError("'validation' must name a registered hook", index)
        if hook_name not in VALIDATION_HOOKS:
            raise DefinitionParseError(f"unknown validation hook '{hook_name}'", index)
        data["validation"] = VALIDATION_HOOKS[hook_name]

    try:
        return NodeDefinition.model_validate(data)
    except ValidationError as e:
        raise DefinitionParseError(str(e), index) from e


class DefinitionRegistry:
    """Name-keyed store of node definitions with a derived category index."""

    def __init__(self):
        self._definitions: Dict[str, NodeDefinition] = {}
        self._by_category: Dict[str, List[NodeDefinition]] = {}

    def load(self, text: str) -> List[str]:
        """Parse every ``---``-separated document in ``text``.

        Definitions replace earlier ones with the same name. The first
        malformed document raises :class:`DefinitionParseError`; documents
        before it stay merged.
        """
        loaded: List[str] = []
        try:
            for index, segment in enumerate(split_documents(text)):
                if not segment.strip():
                    continue
                definition = parse_definition(segment, index)
                if definition.name in self._definitions:
                    logger.warning("Replacing node definition '%s'", definition.name)
                self._definitions[definition.name] = definition
                loaded.append(definition.name)
        finally:
            self._rebuild_categories()
        logger.info("Loaded %d node definition(s)", len(loaded))
        return loaded

    def load_file(self, path: Path) -> List[str]:
        path = Path(path)
        logger.debug("Loading node definitions from %s", path)
        return self.load(path.read_text(encoding="utf-8"))

    def load_directory(self, path: Path) -> List[str]:
        path = Path(path)
        loaded: List[str] = []
        for p in sorted([*path.glob("*.yaml"), *path.glob("*.yml")]):
            loaded.extend(self.load_file(p))
        return loaded

    def load_builtin(self) -> List[str]:
        pkg = files("pulsargraph.definitions")
        loaded: List[str] = []
        for name in BUILTIN_PACKS:
            loaded.extend(self.load((pkg / f"{name}.yaml").read_text(encoding="utf-8")))
        return loaded

    def attach_validation(self, name: str, hook: ValidationHook) -> NodeDefinition:
        definition = self.require(name).model_copy(update={"validation": hook})
        self._definitions[name] = definition
        self._rebuild_categories()
        return definition

    def get(self, name: str) -> Optional[NodeDefinition]:
        return self._definitions.get(name)

    def require(self, name: str) -> NodeDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownNodeTypeError(name)
        return definition

    def by_category(self) -> Dict[str, List[NodeDefinition]]:
        return {category: list(defs) for category, defs in self._by_category.items()}

    def names(self) -> List[str]:
        return list(self._definitions)

    def _rebuild_categories(self):
        by_category: Dict[str, List[NodeDefinition]] = {}
        for definition in self._definitions.values():
            by_category.setdefault(definition.category, []).append(definition)
        self._by_category = by_category

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[NodeDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)
