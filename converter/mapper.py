# converter/mapper.py
"""Node mapper: ties validation, transformation, dependencies and generation together."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import structlog

from converter.config import Settings, get_settings
from converter.dependencies import DependencyResolver
from converter.generator import CodeGenerator
from converter.models import (
    MappedNode,
    MappingResult,
    NodeCategory,
    NodeInstance,
    ValidationResult,
    WorkflowMappingStats,
    WorkflowMetadata,
)
from converter.parser import WorkflowInput, parse_workflow
from converter.registry import NodeRegistry, NodeTypeDescriptor
from converter.transformer import ParameterTransformer, TransformContext
from converter.validator import WorkflowValidator

logger = structlog.get_logger(__name__)


@dataclass
class MappingOptions:
    """Per-call knobs for :meth:`NodeMapper.map_workflow`."""
    # Placeholder values to use instead of the configured pattern
    environment_defaults: Dict[str, str] = field(default_factory=dict)
    # None falls back to the configured setting
    apply_defaults: Optional[bool] = None
    # Credential identifiers known to the caller; references to anything
    # else are reported as warnings
    credentials: Optional[Mapping[str, Any]] = None


class NodeMapper:
    """Maps workflow documents onto a node registry."""

    def __init__(self, registry: Optional[NodeRegistry] = None, settings: Optional[Settings] = None):
        if registry is None:
            from nodes import default_registry
            registry = default_registry()
        self.registry = registry
        self.settings = settings or get_settings()
        self.validator = WorkflowValidator(registry)
        self.transformer = ParameterTransformer()
        self.resolver = DependencyResolver(registry, self.settings.default_dependency_version)
        self.generator = CodeGenerator()

    def map_workflow(self, workflow: WorkflowInput, options: Optional[MappingOptions] = None) -> MappingResult:
        """Validate a workflow and map its supported nodes.

        Mapping proceeds even when validation fails so callers get a full
        report. Raises MalformedWorkflowError for documents without a node list.
        """
        options = options or MappingOptions()
        apply_defaults = self.settings.apply_defaults if options.apply_defaults is None else options.apply_defaults

        graph = parse_workflow(workflow)
        validation = self.validator.validate(graph)

        context = TransformContext()
        metadata = WorkflowMetadata(total_nodes=len(graph.nodes))
        mapped_nodes: List[MappedNode] = []
        credential_variables: Dict[str, str] = {}

        for node in graph.nodes:
            descriptor = self.registry.lookup(node.type) if node.type else None
            if descriptor is None:
                continue

            mapped_nodes.append(self._map_node(node, descriptor, context, apply_defaults))
            metadata.supported_nodes += 1
            if descriptor.category == NodeCategory.TRIGGER:
                metadata.trigger_nodes += 1
            else:
                metadata.action_nodes += 1

            for slot in node.credentials:
                spec = descriptor.get_credential(slot)
                if spec is None:
                    continue
                for env_name in spec.environment_variables:
                    credential_variables.setdefault(env_name, self._placeholder(env_name, options))

            if options.credentials is not None:
                validation.warnings.extend(self._check_credential_refs(node, options.credentials))

        manifest = self.resolver.resolve(mapped.type for mapped in mapped_nodes)
        validation.warnings.extend(manifest.warnings)

        environment_variables = {
            name: self._placeholder(name, options) for name in context.environment_variable_names
        }

        logger.info(
            "workflow_mapped",
            workflow=graph.name,
            total_nodes=metadata.total_nodes,
            supported_nodes=metadata.supported_nodes,
            valid=validation.valid,
        )
        return MappingResult(
            validation=validation,
            nodes=mapped_nodes,
            metadata=metadata,
            environment_variables=environment_variables,
            credential_variables=credential_variables,
            dependencies=dict(manifest.packages),
        )

    def _map_node(
        self,
        node: NodeInstance,
        descriptor: NodeTypeDescriptor,
        context: TransformContext,
        apply_defaults: bool,
    ) -> MappedNode:
        raw = descriptor.apply_defaults(node.parameters) if apply_defaults else node.parameters
        context.node_id = node.id
        context.verbatim_keys = descriptor.verbatim_parameters
        parameters = self.transformer.transform(raw, context)
        return MappedNode(node=node, descriptor=descriptor, category=descriptor.category, parameters=parameters)

    def _placeholder(self, name: str, options: MappingOptions) -> str:
        if name in options.environment_defaults:
            return options.environment_defaults[name]
        return self.settings.env_placeholder_pattern.format(name=name, lower=name.lower())

    def _check_credential_refs(self, node: NodeInstance, known: Mapping[str, Any]) -> List[str]:
        return [
            f"Node '{node.name}': credential '{ref}' ({slot}) was not found"
            for slot, ref in node.credentials.items()
            if ref not in known
        ]

    def generate_node_implementations(
        self, mapped_nodes: List[MappedNode], stop_on_error: bool = False
    ) -> Dict[str, str]:
        """Generate source for each mapped node, keyed by node id.

        Successful sources are also stored on ``MappedNode.implementation``.
        """
        return self.generator.generate_all(mapped_nodes, stop_on_error=stop_on_error)

    def get_workflow_mapping_stats(self, workflow: WorkflowInput) -> WorkflowMappingStats:
        graph = parse_workflow(workflow)
        validation: ValidationResult = self.validator.validate(graph)

        total = len(graph.nodes)
        supported = sum(1 for node in graph.nodes if node.type and self.registry.is_supported(node.type))
        percentage = (supported / total * 100) if total else 0.0

        return WorkflowMappingStats(
            total_nodes=total,
            supported_nodes=supported,
            unsupported_nodes=list(validation.unsupported_nodes),
            supported_percentage=percentage,
        )

    def is_node_type_supported(self, type_id: str) -> bool:
        return self.registry.is_supported(type_id)

    def get_supported_node_types(self) -> List[NodeTypeDescriptor]:
        return self.registry.descriptors()


def map_workflow(
    workflow: WorkflowInput,
    options: Optional[MappingOptions] = None,
    registry: Optional[NodeRegistry] = None,
) -> MappingResult:
    return NodeMapper(registry).map_workflow(workflow, options)


def generate_node_implementations(
    mapped_nodes: List[MappedNode],
    stop_on_error: bool = False,
    registry: Optional[NodeRegistry] = None,
) -> Dict[str, str]:
    return NodeMapper(registry).generate_node_implementations(mapped_nodes, stop_on_error)


def get_workflow_mapping_stats(workflow: WorkflowInput, registry: Optional[NodeRegistry] = None) -> WorkflowMappingStats:
    return NodeMapper(registry).get_workflow_mapping_stats(workflow)


def is_node_type_supported(type_id: str, registry: Optional[NodeRegistry] = None) -> bool:
    return NodeMapper(registry).is_node_type_supported(type_id)


def get_supported_node_types(registry: Optional[NodeRegistry] = None) -> List[NodeTypeDescriptor]:
    return NodeMapper(registry).get_supported_node_types()
