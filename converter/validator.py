"""Workflow validation against a node registry."""

from typing import Any, Iterator, List, Mapping, Optional, Tuple

import structlog
from pydantic import AnyUrl, TypeAdapter, ValidationError as PydanticValidationError

from converter.expressions import BracedExpression, has_expression, match_env_reference, parse_path, parse_template
from converter.models import NodeCategory, NodeInstance, ValidationResult, WorkflowGraph
from converter.parser import WorkflowInput, parse_workflow
from converter.registry import NodeRegistry, NodeTypeDescriptor, ParameterKind, ParameterSpec

logger = structlog.get_logger(__name__)

_URL = TypeAdapter(AnyUrl)
_BOOLEAN_STRINGS = {"true", "false"}


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_value(spec: ParameterSpec, value: Any) -> Optional[str]:
    """Return a description of the violated constraint, or None if ``value`` fits ``spec``."""
    if value is None:
        return None
    # Expressions are only known at runtime
    if isinstance(value, str) and has_expression(value):
        return None

    kind = spec.kind
    if kind == ParameterKind.NUMBER:
        if isinstance(value, bool):
            return f"must be a number (got {value!r})"
        if isinstance(value, (int, float)):
            return None
        try:
            float(str(value).strip())
        except ValueError:
            return f"must be a number (got {value!r})"
        return None

    if kind == ParameterKind.URL:
        if not isinstance(value, str):
            return f"must be a valid URL (got {value!r})"
        try:
            url = _URL.validate_python(value.strip())
        except PydanticValidationError:
            return f"must be a valid URL (got {value!r})"
        if not url.host:
            return f"must be a valid URL with a host (got {value!r})"
        return None

    if kind == ParameterKind.BOOLEAN:
        if isinstance(value, bool) or (isinstance(value, str) and value.lower() in _BOOLEAN_STRINGS):
            return None
        return f"must be a boolean (got {value!r})"

    if kind == ParameterKind.OBJECT:
        return None if isinstance(value, Mapping) else f"must be an object (got {type(value).__name__})"

    if kind == ParameterKind.ARRAY:
        return None if isinstance(value, (list, tuple)) else f"must be a list (got {type(value).__name__})"

    if kind == ParameterKind.OPTIONS:
        if value in spec.options:
            return None
        allowed = ", ".join(repr(option) for option in spec.options)
        return f"must be one of {allowed} (got {value!r})"

    if kind in (ParameterKind.STRING, ParameterKind.CODE):
        if isinstance(value, (Mapping, list, tuple)):
            return f"must be a string (got {type(value).__name__})"
        return None

    return None


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


class WorkflowValidator:
    """Checks workflow shape, node type support and parameter validity.

    Only unsupported types, missing required parameters and invalid values
    make a workflow invalid. Everything else is reported as a warning.
    """

    def __init__(self, registry: NodeRegistry):
        self.registry = registry

    def validate(self, workflow: WorkflowInput) -> ValidationResult:
        graph = parse_workflow(workflow)
        result = ValidationResult()

        seen_ids = set()
        has_trigger = False

        for node in graph.nodes:
            if node.id in seen_ids:
                result.warnings.append(f"Duplicate node id: {node.id}")
            seen_ids.add(node.id)

            if not node.type:
                result.errors.append(f"Node '{node.name}': node type is required")
                result.unsupported_nodes.append(node.type)
                continue

            descriptor = self.registry.lookup(node.type)
            if descriptor is None:
                result.unsupported_nodes.append(node.type)
                continue

            if descriptor.category == NodeCategory.TRIGGER:
                has_trigger = True

            result.errors.extend(self._check_parameters(node, descriptor))
            result.warnings.extend(self._check_credentials(node, descriptor))
            result.warnings.extend(self._check_expressions(node, descriptor))

        result.warnings.extend(self._check_connections(graph))

        if graph.nodes and not has_trigger and len(result.unsupported_nodes) < len(graph.nodes):
            result.warnings.append("No trigger nodes found - workflow may need manual execution")

        result.valid = not result.errors and not result.unsupported_nodes
        logger.debug(
            "workflow_validated",
            valid=result.valid,
            errors=len(result.errors),
            unsupported=len(result.unsupported_nodes),
        )
        return result

    def _check_parameters(self, node: NodeInstance, descriptor: NodeTypeDescriptor) -> List[str]:
        errors = []
        parameters = node.parameters

        for spec in descriptor.parameters:
            value = parameters.get(spec.name)
            if spec.required and _is_missing(value):
                errors.append(f"Node '{node.name}': parameter '{spec.name}' is required")
                continue
            problem = check_value(spec, value)
            if problem:
                errors.append(f"Node '{node.name}': parameter '{spec.name}' {problem}")

        for check in descriptor.checks:
            problem = check(parameters)
            if problem:
                errors.append(f"Node '{node.name}': {problem}")

        return errors

    def _check_credentials(self, node: NodeInstance, descriptor: NodeTypeDescriptor) -> List[str]:
        warnings = []
        for slot in node.credentials:
            if descriptor.get_credential(slot) is None:
                warnings.append(
                    f"Node '{node.name}': credential type '{slot}' is not supported by {descriptor.type_id} "
                    f"and will not be generated"
                )
        return warnings

    def _check_expressions(self, node: NodeInstance, descriptor: NodeTypeDescriptor) -> List[str]:
        warnings = []
        verbatim = descriptor.verbatim_parameters
        for key, value in node.parameters.items():
            if key in verbatim:
                continue
            for text in _iter_strings(value):
                for segment in parse_template(text):
                    if not isinstance(segment, BracedExpression):
                        continue
                    if match_env_reference(segment.expression) or parse_path(segment.expression):
                        continue
                    warnings.append(
                        f"Node '{node.name}': expression '{{{{ {segment.expression} }}}}' "
                        f"is not a simple path and needs manual review"
                    )
        return warnings

    def _check_connections(self, graph: WorkflowGraph) -> List[str]:
        warnings = []
        keys = graph.node_keys
        for source, targets in graph.connections.items():
            if source not in keys:
                warnings.append(f"Connection source '{source}' does not match any node")
            for connection in targets:
                if connection.target not in keys:
                    warnings.append(f"Connection from '{source}' targets unknown node '{connection.target}'")
        return warnings


def validate_workflow(workflow: WorkflowInput, registry: NodeRegistry) -> Tuple[WorkflowGraph, ValidationResult]:
    """Parse and validate in one step, returning the graph for further use."""
    graph = parse_workflow(workflow)
    return graph, WorkflowValidator(registry).validate(graph)
