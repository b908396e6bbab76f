"""Workflow-level helpers and human readable conversion reports."""

import math
from typing import List, Mapping, Optional, Union

from converter.dependencies import DependencyManifest
from converter.mapper import NodeMapper
from converter.models import MappingResult
from converter.parser import WorkflowInput, parse_workflow
from converter.registry import NodeRegistry

PACKAGE_DESCRIPTIONS = {
    "croniter": "Cron expression scheduling",
    "fastapi": "HTTP server for webhook triggers",
    "httpx": "HTTP client",
    "psycopg": "PostgreSQL driver",
    "python-dotenv": "Loads configuration from .env files",
    "redis": "Redis client",
    "slack-sdk": "Slack Web API client",
    "uvicorn": "ASGI server for webhook triggers",
}


def _registry(registry: Optional[NodeRegistry]) -> NodeRegistry:
    if registry is None:
        from nodes import default_registry
        return default_registry()
    return registry


def is_workflow_supported(workflow: WorkflowInput, registry: Optional[NodeRegistry] = None) -> bool:
    """True when every node's type is registered."""
    table = _registry(registry)
    return all(node.type and table.is_supported(node.type) for node in parse_workflow(workflow).nodes)


def get_unsupported_node_types(workflow: WorkflowInput, registry: Optional[NodeRegistry] = None) -> List[str]:
    """Unsupported type ids, each listed once in first-occurrence order."""
    table = _registry(registry)
    unsupported: List[str] = []
    for node in parse_workflow(workflow).nodes:
        if node.type and not table.is_supported(node.type) and node.type not in unsupported:
            unsupported.append(node.type)
    return unsupported


def calculate_complexity_score(workflow: WorkflowInput) -> float:
    graph = parse_workflow(workflow)
    return len(graph.nodes) + graph.connection_count * 0.5


def estimate_conversion_time(workflow: WorkflowInput, registry: Optional[NodeRegistry] = None) -> int:
    """Rough effort estimate in minutes.

    Two minutes per supported node and five per unsupported node, scaled up
    for workflows with a complexity score above 10.
    """
    graph = parse_workflow(workflow)
    stats = NodeMapper(_registry(registry)).get_workflow_mapping_stats(graph)
    minutes = stats.supported_nodes * 2 + (stats.total_nodes - stats.supported_nodes) * 5
    multiplier = max(1.0, calculate_complexity_score(graph) / 10)
    return math.ceil(minutes * multiplier)


def generate_conversion_summary(result: MappingResult) -> str:
    """Markdown report of a mapping result."""
    metadata = result.metadata
    validation = result.validation
    percentage = round(metadata.supported_nodes / metadata.total_nodes * 100) if metadata.total_nodes else 0

    lines = [
        "# Workflow Conversion Summary",
        "",
        "## Overview",
        f"- **Total Nodes**: {metadata.total_nodes}",
        f"- **Supported Nodes**: {metadata.supported_nodes} ({percentage}%)",
        f"- **Trigger Nodes**: {metadata.trigger_nodes}",
        f"- **Action Nodes**: {metadata.action_nodes}",
        "",
    ]

    for title, entries in (
        ("Errors", validation.errors),
        ("Warnings", validation.warnings),
    ):
        if entries:
            lines.append(f"## {title} ({len(entries)})")
            lines.extend(f"- {entry}" for entry in entries)
            lines.append("")

    if validation.unsupported_nodes:
        lines.append("## Unsupported Node Types")
        lines.extend(f"- {type_id or '(missing type)'}" for type_id in dict.fromkeys(validation.unsupported_nodes))
        lines.append("")

    if result.environment_variables or result.credential_variables:
        lines.append("## Configuration Required")
        if result.environment_variables:
            lines.append(f"- **Environment Variables**: {len(result.environment_variables)} variables need to be set")
        if result.credential_variables:
            lines.append(f"- **Credentials**: {len(result.credential_variables)} credential fields need to be configured")
        lines.append("")

    lines.append("## Status")
    if validation.valid:
        lines.append("**Ready for conversion** - All nodes are supported and properly configured.")
    else:
        lines.append("**Conversion blocked** - Please resolve the errors above before proceeding.")

    return "\n".join(lines) + "\n"


def generate_dependency_documentation(dependencies: Union[DependencyManifest, Mapping[str, str]]) -> str:
    """Markdown section listing the runtime packages of a generated project."""
    packages = dependencies.packages if isinstance(dependencies, DependencyManifest) else dependencies

    lines = ["## Dependencies", "", "This project uses the following dependencies:", ""]
    if packages:
        lines.extend(["### Runtime Dependencies", ""])
        for name, version in packages.items():
            description = PACKAGE_DESCRIPTIONS.get(name.split("[", 1)[0], "Required dependency")
            lines.append(f"- **{name}** ({version}): {description}")
        lines.append("")
    return "\n".join(lines)
