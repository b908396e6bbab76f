"""Workflow-to-code conversion engine for n8n workflows."""

from converter.exceptions import (
    CodeGenerationError,
    ConverterError,
    MalformedWorkflowError,
    RegistryError,
    TemplateRenderError,
)
from converter.mapper import (
    MappingOptions,
    NodeMapper,
    generate_node_implementations,
    get_supported_node_types,
    get_workflow_mapping_stats,
    is_node_type_supported,
    map_workflow,
)
from converter.models import MappedNode, MappingResult, ValidationResult, WorkflowGraph, WorkflowMappingStats
from converter.parser import parse_workflow, parse_workflow_file, parse_workflow_string
from converter.registry import NodeRegistry, NodeTypeDescriptor

__version__ = "1.0.0"

__all__ = [
    "CodeGenerationError",
    "ConverterError",
    "MalformedWorkflowError",
    "MappedNode",
    "MappingOptions",
    "MappingResult",
    "NodeMapper",
    "NodeRegistry",
    "NodeTypeDescriptor",
    "RegistryError",
    "TemplateRenderError",
    "ValidationResult",
    "WorkflowGraph",
    "WorkflowMappingStats",
    "generate_node_implementations",
    "get_supported_node_types",
    "get_workflow_mapping_stats",
    "is_node_type_supported",
    "map_workflow",
    "parse_workflow",
    "parse_workflow_file",
    "parse_workflow_string",
]
