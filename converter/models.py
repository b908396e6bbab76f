"""Data model for workflow documents and mapping results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from converter.registry import NodeTypeDescriptor


class NodeCategory(str, Enum):
    """Role of a node type in a workflow."""
    TRIGGER = "trigger"
    ACTION = "action"


@dataclass
class Connection:
    """A directed edge from a source node to a target node port."""
    target: str
    port_type: str = "main"
    port_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"node": self.target, "type": self.port_type, "index": self.port_index}


@dataclass
class NodeInstance:
    """A single node of a workflow document."""
    id: str
    name: str
    type: str
    type_version: float = 1
    position: List[float] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)
    credentials: Dict[str, str] = field(default_factory=dict)
    disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "typeVersion": self.type_version,
            "position": list(self.position),
            "parameters": self.parameters,
        }
        if self.credentials:
            data["credentials"] = dict(self.credentials)
        return data


@dataclass
class WorkflowGraph:
    """A parsed workflow: ordered nodes and their outgoing connections."""
    nodes: List[NodeInstance] = field(default_factory=list)
    connections: Dict[str, List[Connection]] = field(default_factory=dict)
    name: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def node_keys(self) -> Set[str]:
        """Ids and display names; n8n exports key connections by name."""
        keys = set()
        for node in self.nodes:
            keys.add(node.id)
            keys.add(node.name)
        return keys

    @property
    def connection_count(self) -> int:
        return sum(len(targets) for targets in self.connections.values())

    def get_node(self, key: str) -> Optional[NodeInstance]:
        for node in self.nodes:
            if node.id == key or node.name == key:
                return node
        return None


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unsupported_nodes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "unsupportedNodes": list(self.unsupported_nodes),
        }


@dataclass
class WorkflowMetadata:
    total_nodes: int = 0
    supported_nodes: int = 0
    trigger_nodes: int = 0
    action_nodes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalNodes": self.total_nodes,
            "supportedNodes": self.supported_nodes,
            "triggerNodes": self.trigger_nodes,
            "actionNodes": self.action_nodes,
        }


@dataclass
class MappedNode:
    """A supported workflow node paired with its resolved parameters."""
    node: NodeInstance
    descriptor: "NodeTypeDescriptor"
    category: NodeCategory
    parameters: Dict[str, Any] = field(default_factory=dict)
    implementation: Optional[str] = None

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def type(self) -> str:
        return self.node.type

    @property
    def credentials(self) -> Dict[str, str]:
        return self.node.credentials

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category.value,
            "parameters": to_plain(self.parameters),
        }
        if self.node.credentials:
            data["credentials"] = dict(self.node.credentials)
        if self.implementation is not None:
            data["implementation"] = self.implementation
        return data


@dataclass
class MappingResult:
    """Outcome of mapping one workflow. Never shared between calls."""
    validation: ValidationResult
    nodes: List[MappedNode] = field(default_factory=list)
    metadata: WorkflowMetadata = field(default_factory=WorkflowMetadata)
    environment_variables: Dict[str, str] = field(default_factory=dict)
    credential_variables: Dict[str, str] = field(default_factory=dict)
    dependencies: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "validation": self.validation.to_dict(),
            "nodes": [node.to_dict() for node in self.nodes],
            "metadata": self.metadata.to_dict(),
            "environmentVariables": dict(self.environment_variables),
            "credentialVariables": dict(self.credential_variables),
            "dependencies": dict(self.dependencies),
        }


@dataclass
class WorkflowMappingStats:
    total_nodes: int
    supported_nodes: int
    unsupported_nodes: List[str]
    supported_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "supportedNodes": self.supported_nodes,
            "unsupportedNodes": list(self.unsupported_nodes),
            "supportedPercentage": self.supported_percentage,
        }


def to_plain(value: Any) -> Any:
    """Convert resolved parameters (which may hold expression markers) to JSON-safe data."""
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
