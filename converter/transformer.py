"""Resolve raw node parameters into generator-ready values."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import structlog

from converter.expressions import build_marker, find_env_references

logger = structlog.get_logger(__name__)


@dataclass
class TransformContext:
    """Mutable state shared by every node transformed during one mapping call.

    ``environment_variables`` behaves as an ordered set. A context must not be
    shared between concurrent calls or between workflows.
    """
    environment_variables: Dict[str, None] = field(default_factory=dict)
    credentials: Mapping[str, Any] = field(default_factory=dict)
    verbatim_keys: FrozenSet[str] = frozenset()
    node_id: Optional[str] = None

    def add_environment_variable(self, name: str) -> None:
        if name not in self.environment_variables:
            logger.debug("environment_variable_found", name=name, node_id=self.node_id)
            self.environment_variables[name] = None

    @property
    def environment_variable_names(self) -> List[str]:
        return list(self.environment_variables)


class ParameterTransformer:
    """Walks a parameter tree and rewrites expression strings into markers."""

    def transform(self, parameters: Mapping[str, Any], context: TransformContext) -> Dict[str, Any]:
        resolved = {}
        for key, value in parameters.items():
            if key in context.verbatim_keys:
                resolved[key] = self._harvest(value, context)
            else:
                resolved[key] = self._transform_value(value, context)
        return resolved

    def _transform_value(self, value: Any, context: TransformContext) -> Any:
        if isinstance(value, str):
            for name in find_env_references(value):
                context.add_environment_variable(name)
            return build_marker(value)
        if isinstance(value, Mapping):
            return {key: self._transform_value(item, context) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._transform_value(item, context) for item in value]
        return value

    def _harvest(self, value: Any, context: TransformContext) -> Any:
        """Record env references without rewriting, for code bodies."""
        if isinstance(value, str):
            for name in find_env_references(value):
                context.add_environment_variable(name)
        elif isinstance(value, Mapping):
            for item in value.values():
                self._harvest(item, context)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._harvest(item, context)
        return value


def transform_parameters(parameters: Mapping[str, Any], context: TransformContext) -> Dict[str, Any]:
    """Convenience function for a one-off transformation."""
    return ParameterTransformer().transform(parameters, context)
