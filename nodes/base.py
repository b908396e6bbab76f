"""Helpers for declaring built-in node types."""

from typing import Any, Mapping, Optional, Sequence

from converter.generator import NodeTemplate
from converter.models import NodeCategory
from converter.registry import CredentialSpec, NodeTypeDescriptor, ParameterCheck, ParameterSpec

NODE_TYPE_PREFIX = "n8n-nodes-base."


def node_type(name: str) -> str:
    return f"{NODE_TYPE_PREFIX}{name}"


def define_node(
    name: str,
    display_name: str,
    category: NodeCategory,
    class_name: str,
    body: str = "",
    description: str = "",
    parameters: Sequence[ParameterSpec] = (),
    dependencies: Sequence[str] = (),
    credentials: Sequence[CredentialSpec] = (),
    imports: Sequence[str] = (),
    checks: Sequence[ParameterCheck] = (),
) -> NodeTypeDescriptor:
    """Build a descriptor whose template renders ``class_name`` with ``body``."""
    type_id = node_type(name)
    template = NodeTemplate(
        type_id=type_id,
        class_name=class_name,
        category=category,
        body=body,
        imports=imports,
        credentials=credentials,
        docstring=description,
    )
    return NodeTypeDescriptor(
        type_id=type_id,
        display_name=display_name,
        category=category,
        template=template,
        description=description,
        parameters=tuple(parameters),
        dependencies=tuple(dependencies),
        credentials=tuple(credentials),
        checks=tuple(checks),
    )


def require_one_of(*names: str) -> ParameterCheck:
    """Check that at least one of ``names`` has a value."""
    def check(parameters: Mapping[str, Any]) -> Optional[str]:
        for name in names:
            value = parameters.get(name)
            if value is not None and not (isinstance(value, str) and not value.strip()):
                return None
        listed = ", ".join(f"'{name}'" for name in names)
        return f"one of parameters {listed} is required"
    return check
