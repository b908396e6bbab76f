"""Built-in node types."""

from functools import lru_cache
from typing import Tuple

from converter.registry import NodeRegistry, NodeTypeDescriptor
from nodes.core import CORE_NODES
from nodes.services import SERVICE_NODES
from nodes.triggers import TRIGGER_NODES

BUILTIN_NODE_TYPES: Tuple[NodeTypeDescriptor, ...] = TRIGGER_NODES + CORE_NODES + SERVICE_NODES


@lru_cache()
def default_registry() -> NodeRegistry:
    """Registry of the built-in node types, built once per process."""
    return NodeRegistry(BUILTIN_NODE_TYPES)


__all__ = ["BUILTIN_NODE_TYPES", "default_registry"]
