# converter/parser.py
"""Parse n8n workflow documents into WorkflowGraph objects."""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import structlog
import yaml

from converter.exceptions import MalformedWorkflowError
from converter.models import Connection, NodeInstance, WorkflowGraph

logger = structlog.get_logger(__name__)

WorkflowInput = Union[WorkflowGraph, Mapping[str, Any]]


class WorkflowParser:
    """Turn a raw workflow document into a WorkflowGraph.

    Only the document shape is checked here. Anything attributable to a
    single node (unknown type, bad parameters) is left to the validator.
    """

    def parse_file(self, path: Path) -> WorkflowGraph:
        """Parse workflow from a JSON or YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        return self.parse_string(content)

    def parse_string(self, content: str) -> WorkflowGraph:
        """Parse workflow from a JSON or YAML string."""
        try:
            # JSON is a subset of YAML, so one loader covers n8n exports and hand-written YAML
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise MalformedWorkflowError(f"Invalid workflow document: {e}")
        return self.parse(data)

    def parse(self, data: Any) -> WorkflowGraph:
        if isinstance(data, WorkflowGraph):
            return data
        if not isinstance(data, Mapping):
            raise MalformedWorkflowError("Workflow document must be an object")

        raw_nodes = data.get("nodes")
        if raw_nodes is None:
            raise MalformedWorkflowError("Workflow document has no 'nodes'")
        if isinstance(raw_nodes, (str, bytes)) or not isinstance(raw_nodes, (list, tuple)):
            raise MalformedWorkflowError("Workflow 'nodes' must be a list")

        nodes = [self._parse_node(raw, index) for index, raw in enumerate(raw_nodes)]
        connections = self._parse_connections(data.get("connections"))

        settings = data.get("settings")
        return WorkflowGraph(
            nodes=nodes,
            connections=connections,
            name=str(data.get("name") or ""),
            settings=dict(settings) if isinstance(settings, Mapping) else {},
        )

    def _parse_node(self, raw: Any, index: int) -> NodeInstance:
        if not isinstance(raw, Mapping):
            raise MalformedWorkflowError(f"Node at index {index} must be an object")

        node_id = raw.get("id")
        name = raw.get("name")
        # Older exports have no ids and reference nodes by name
        node_id = str(node_id) if node_id not in (None, "") else (str(name) if name else f"node_{index}")
        name = str(name) if name not in (None, "") else node_id

        parameters = raw.get("parameters")
        if not isinstance(parameters, Mapping):
            parameters = {}

        position = raw.get("position")
        if not isinstance(position, (list, tuple)):
            position = []

        return NodeInstance(
            id=node_id,
            name=name,
            type=str(raw.get("type") or ""),
            type_version=raw.get("typeVersion", 1),
            position=list(position),
            parameters=dict(parameters),
            credentials=self._parse_credentials(raw.get("credentials")),
            disabled=bool(raw.get("disabled", False)),
        )

    def _parse_credentials(self, raw: Any) -> Dict[str, str]:
        if not isinstance(raw, Mapping):
            return {}

        credentials = {}
        for slot, ref in raw.items():
            # Newer exports store {"id": ..., "name": ...}, older ones a bare name
            if isinstance(ref, Mapping):
                ref = ref.get("name") or ref.get("id") or ""
            credentials[str(slot)] = str(ref)
        return credentials

    def _parse_connections(self, raw: Any) -> Dict[str, List[Connection]]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise MalformedWorkflowError("Workflow 'connections' must be an object")

        connections: Dict[str, List[Connection]] = {}
        for source, outputs in raw.items():
            targets: List[Connection] = []
            # Either a flat list of targets, or n8n's {port: [[target, ...], ...]}
            if isinstance(outputs, Mapping):
                for port_type, branches in outputs.items():
                    for branch in branches or []:
                        entries = branch if isinstance(branch, list) else [branch]
                        targets.extend(self._parse_targets(entries, str(port_type)))
            elif isinstance(outputs, list):
                targets.extend(self._parse_targets(outputs, "main"))
            else:
                logger.warning("connection_entry_skipped", source=source)
                continue
            connections[str(source)] = targets
        return connections

    def _parse_targets(self, entries: List[Any], default_port: str) -> List[Connection]:
        targets = []
        for entry in entries:
            if isinstance(entry, list):
                targets.extend(self._parse_targets(entry, default_port))
                continue
            if not isinstance(entry, Mapping) or "node" not in entry:
                logger.warning("connection_target_skipped", entry=repr(entry))
                continue
            try:
                index = int(entry.get("index", 0))
            except (TypeError, ValueError):
                index = 0
            targets.append(Connection(
                target=str(entry["node"]),
                port_type=str(entry.get("type") or default_port),
                port_index=index,
            ))
        return targets


def parse_workflow(data: WorkflowInput) -> WorkflowGraph:
    """Convenience function to parse a workflow document or pass a graph through."""
    return WorkflowParser().parse(data)


def parse_workflow_file(path: Path) -> WorkflowGraph:
    """Convenience function to parse workflow from file."""
    return WorkflowParser().parse_file(Path(path))


def parse_workflow_string(content: str) -> WorkflowGraph:
    """Convenience function to parse workflow from string."""
    return WorkflowParser().parse_string(content)
