# converter/registry.py
"""Immutable registry of supported node types."""

import copy
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

import structlog

from converter.exceptions import RegistryError
from converter.models import NodeCategory

logger = structlog.get_logger(__name__)

TemplateFn = Callable[[Mapping[str, Any], Mapping[str, str]], str]
ParameterCheck = Callable[[Mapping[str, Any]], Optional[str]]


class ParameterKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    URL = "url"
    OBJECT = "object"
    ARRAY = "array"
    OPTIONS = "options"
    CODE = "code"
    ANY = "any"


@dataclass(frozen=True)
class ParameterSpec:
    """Declared parameter of a node type."""
    name: str
    kind: ParameterKind = ParameterKind.STRING
    required: bool = False
    default: Any = None
    options: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class CredentialSpec:
    """Declarative mapping from a credential slot to environment variable names.

    ``fields`` pairs each secret field with the variable the generated code
    reads it from, e.g. ``(("user", "HTTP_BASIC_USERNAME"), ...)``.
    """
    slot: str
    method_name: str
    fields: Tuple[Tuple[str, str], ...]
    description: str = ""

    @property
    def environment_variables(self) -> List[str]:
        return [env_name for _, env_name in self.fields]


@dataclass(frozen=True)
class NodeTypeDescriptor:
    """Registry entry describing one supported node type."""
    type_id: str
    display_name: str
    category: NodeCategory
    template: TemplateFn
    description: str = ""
    parameters: Tuple[ParameterSpec, ...] = ()
    dependencies: Tuple[str, ...] = ()
    credentials: Tuple[CredentialSpec, ...] = ()
    checks: Tuple[ParameterCheck, ...] = ()

    @property
    def required_parameters(self) -> List[ParameterSpec]:
        return [spec for spec in self.parameters if spec.required]

    @property
    def verbatim_parameters(self) -> FrozenSet[str]:
        """Parameters holding source code, which are never rewritten."""
        return frozenset(spec.name for spec in self.parameters if spec.kind == ParameterKind.CODE)

    def get_parameter(self, name: str) -> Optional[ParameterSpec]:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None

    def get_credential(self, slot: str) -> Optional[CredentialSpec]:
        for spec in self.credentials:
            if spec.slot == slot:
                return spec
        return None

    def apply_defaults(self, parameters: Mapping[str, Any]) -> Dict[str, Any]:
        """Copy of ``parameters`` with declared defaults filled in for absent keys."""
        resolved = copy.deepcopy(dict(parameters))
        for spec in self.parameters:
            if spec.name not in resolved and spec.default is not None:
                resolved[spec.name] = copy.deepcopy(spec.default)
        return resolved


class NodeRegistry:
    """Lookup table of node type descriptors, fixed at construction.

    Registries are plain values: build one at startup and hand it to the
    mapper, or build an isolated one with synthetic descriptors in tests.
    """

    def __init__(self, descriptors: Iterable[NodeTypeDescriptor]):
        table: Dict[str, NodeTypeDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.type_id in table:
                raise RegistryError(f"Duplicate node type: {descriptor.type_id}")
            table[descriptor.type_id] = descriptor
        self._descriptors = MappingProxyType(table)
        logger.debug("node_registry_built", node_types=len(table))

    def lookup(self, type_id: str) -> Optional[NodeTypeDescriptor]:
        """Get the descriptor for a node type, or None when unsupported."""
        return self._descriptors.get(type_id)

    def is_supported(self, type_id: str) -> bool:
        return type_id in self._descriptors

    def list_supported_types(self) -> List[str]:
        return list(self._descriptors)

    def descriptors(self) -> List[NodeTypeDescriptor]:
        return list(self._descriptors.values())

    def get_nodes_by_category(self) -> Dict[str, List[str]]:
        """Get node types grouped by category"""
        categories: Dict[str, List[str]] = {}
        for type_id, descriptor in self._descriptors.items():
            categories.setdefault(descriptor.category.value, []).append(type_id)
        return categories

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._descriptors

    def __iter__(self) -> Iterator[NodeTypeDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)
