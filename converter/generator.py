# converter/generator.py
"""Python code generation for mapped workflow nodes."""

import keyword
import math
import re
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import jinja2
import structlog

from converter.exceptions import CodeGenerationError, TemplateRenderError
from converter.expressions import EnvReference, ExpressionReference, TemplateString
from converter.models import MappedNode, NodeCategory
from converter.registry import CredentialSpec

logger = structlog.get_logger(__name__)

BASE_CLASSES = {
    NodeCategory.TRIGGER: "BaseTriggerNode",
    NodeCategory.ACTION: "BaseActionNode",
}

# Attribute names owned by the generated base classes
RESERVED_ATTRIBUTES = frozenset({
    "node_type", "node_name", "category", "logger", "configure", "param", "execute", "start",
})

NODE_CLASS_TEMPLATE = '''\
import os
{% for line in imports %}
{{ line }}
{% endfor %}

from .base import {{ base_class }}, Expression, Template


class {{ class_name }}({{ base_class }}):
    """{{ docstring }}"""

    node_type = {{ type_id | python_value }}

    def __init__(self, **overrides):
        super().__init__()
{% for field in fields %}
        self.{{ field.attribute }} = {{ field.value | python_value }}
{% endfor %}
        self.configure(overrides)
{% for credential in credentials %}

    def {{ credential.spec.method_name }}(self):
        # {{ credential.spec.slot }} credential {{ credential.ref | python_value }}
        return {
{% for field_name, env_name in credential.spec.fields %}
            {{ field_name | python_value }}: os.environ.get({{ env_name | python_value }}),
{% endfor %}
        }
{% endfor %}
{% if body %}

{{ body }}
{% endif %}
'''

RUNTIME_SUPPORT_TEMPLATE = '''\
"""Runtime support for converted workflow nodes."""

import logging
import os
import re

logger = logging.getLogger(__name__)

_ROOT = re.compile(r"\\$(?P<root>[A-Za-z_][A-Za-z0-9_]*)")
_ACCESSOR = re.compile(
    r"\\.(?P<attr>[A-Za-z_][A-Za-z0-9_]*)"
    r"|\\[\\s*(?:(?P<quote>['\\"])(?P<key>[^'\\"\\]]*)(?P=quote)|(?P<index>\\d+))\\s*\\]"
)


def parse_path(source):
    """Split "$json.a[0]" into ("$json", "a", "0"); None if it is not a plain path."""
    source = source.strip()
    match = _ROOT.match(source)
    if not match:
        return None
    parts = ["$" + match.group("root")]
    pos = match.end()
    while pos < len(source):
        accessor = _ACCESSOR.match(source, pos)
        if not accessor:
            return None
        parts.append(next(g for g in (accessor.group("attr"), accessor.group("index"), accessor.group("key")) if g is not None))
        pos = accessor.end()
    return tuple(parts)


def _step(value, key):
    if isinstance(value, (list, tuple)):
        try:
            return value[int(key)]
        except (ValueError, IndexError):
            return None
    if isinstance(value, dict):
        return value.get(key)
    return getattr(value, key, None)


class Expression:
    """A workflow data path, resolved against the current item at execution time."""

    def __init__(self, source):
        self.source = source
        self.path = parse_path(source)

    def resolve(self, item, context):
        if self.path is None:
            raise NotImplementedError(f"Expression needs manual porting: {self.source}")
        root, keys = self.path[0], self.path[1:]
        if root == "$json":
            value = item
        elif root == "$env":
            value = dict(os.environ)
        elif root == "$node":
            value = context.get("nodes", {})
        else:
            value = context.get(root[1:])
        for key in keys:
            value = _step(value, key)
        return value

    def __repr__(self):
        return f"Expression({self.source!r})"


class Template:
    """Text interleaving literals with expressions."""

    def __init__(self, *parts):
        self.parts = parts

    def resolve(self, item, context):
        values = [resolve_value(part, item, context) for part in self.parts]
        return "".join("" if value is None else str(value) for value in values)


def resolve_value(value, item, context):
    if isinstance(value, (Expression, Template)):
        return value.resolve(item, context)
    if isinstance(value, dict):
        return {key: resolve_value(inner, item, context) for key, inner in value.items()}
    if isinstance(value, list):
        return [resolve_value(inner, item, context) for inner in value]
    return value


class BaseNode:
    """Common behaviour of generated nodes."""

    node_type = ""
    category = ""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def configure(self, overrides):
        for name, value in overrides.items():
            setattr(self, name, value)

    def param(self, name, item=None, context=None, default=None):
        value = getattr(self, name, None)
        if value is None:
            return default
        return resolve_value(value, item or {}, context or {})

    def execute(self, items, context):
        raise NotImplementedError(f"{self.__class__.__name__} does not implement execute()")


class BaseTriggerNode(BaseNode):
    """Starts a workflow run by handing items to a callback."""

    category = "trigger"

    def start(self, callback):
        raise NotImplementedError(f"{self.__class__.__name__} does not implement start()")

    def execute(self, items, context):
        return items


class BaseActionNode(BaseNode):
    """A step performed on the items of a workflow run."""

    category = "action"
'''


def python_value(value: Any) -> str:
    """Render a resolved parameter value as Python source.

    Markers become runtime accessor expressions, never string literals.
    """
    if isinstance(value, EnvReference):
        return f"os.environ.get({value.name!r}, '')"
    if isinstance(value, ExpressionReference):
        return f"Expression({value.expression!r})"
    if isinstance(value, TemplateString):
        parts = [python_value(part) for part in value.parts]
        if value.is_static:
            return " + ".join(parts)
        return f"Template({', '.join(parts)})"
    if isinstance(value, NodeCategory):
        return repr(value.value)
    if value is None or isinstance(value, (bool, int, str)):
        return repr(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return f"float({str(value)!r})"
        return repr(value)
    if isinstance(value, Mapping):
        items = ", ".join(f"{python_value(key)}: {python_value(item)}" for key, item in value.items())
        return "{" + items + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(python_value(item) for item in value) + "]"
    raise TypeError(f"Cannot render value of type {type(value).__name__}")


def snake_case(name: str) -> str:
    """Convert name to snake_case"""
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    return re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1).lower()


def pascal_case(name: str) -> str:
    """Convert name to PascalCase for class names"""
    words = re.split(r'[^a-zA-Z0-9]', name)
    return ''.join(word[:1].upper() + word[1:] for word in words if word)


def attribute_name(key: str) -> str:
    """A valid, non-reserved Python attribute name for a parameter key."""
    name = re.sub(r'[\W_]+', '_', snake_case(str(key))).strip('_') or "param"
    if name[0].isdigit():
        name = f"p_{name}"
    if keyword.iskeyword(name) or name in RESERVED_ATTRIBUTES:
        name = f"{name}_"
    return name


def _field_list(parameters: Mapping[str, Any]) -> List[Dict[str, Any]]:
    fields = []
    used = set()
    for key, value in parameters.items():
        attribute = attribute_name(key)
        candidate, suffix = attribute, 2
        while candidate in used:
            candidate = f"{attribute}_{suffix}"
            suffix += 1
        used.add(candidate)
        fields.append({"key": key, "attribute": candidate, "value": value})
    return fields


@lru_cache()
def get_environment() -> jinja2.Environment:
    """Shared Jinja2 environment; rendering is thread-safe once built."""
    env = jinja2.Environment(
        loader=jinja2.DictLoader({
            "node_class.py.j2": NODE_CLASS_TEMPLATE,
            "runtime_base.py.j2": RUNTIME_SUPPORT_TEMPLATE,
        }),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters['python_value'] = python_value
    env.filters['snake_case'] = snake_case
    env.filters['pascal_case'] = pascal_case
    env.filters['attribute_name'] = attribute_name
    return env


class NodeTemplate:
    """Template function of a node type: (parameters, credentials) -> source text.

    ``body`` is itself a Jinja2 template rendered with ``parameters``,
    ``fields`` and ``credential_slots``; it supplies the node's methods.
    """

    def __init__(
        self,
        type_id: str,
        class_name: str,
        category: NodeCategory,
        body: str = "",
        imports: Sequence[str] = (),
        credentials: Sequence[CredentialSpec] = (),
        docstring: str = "",
    ):
        self.type_id = type_id
        self.class_name = class_name
        self.category = category
        self.body = body.strip("\n")
        self.imports = tuple(imports)
        self.credentials = {spec.slot: spec for spec in credentials}
        self.docstring = docstring or f"{class_name} node implementation."

    def __call__(self, parameters: Mapping[str, Any], credentials: Mapping[str, str]) -> str:
        env = get_environment()
        fields = _field_list(parameters)
        attributes = {field["key"]: field["attribute"] for field in fields}

        referenced = [
            {"spec": self.credentials[slot], "ref": ref}
            for slot, ref in credentials.items()
            if slot in self.credentials
        ]
        slots = [credential["spec"].slot for credential in referenced]

        body = ""
        if self.body:
            body = env.from_string(self.body).render(
                parameters=parameters,
                attributes=attributes,
                credential_slots=slots,
            )

        return env.get_template("node_class.py.j2").render(
            imports=self.imports,
            base_class=BASE_CLASSES[self.category],
            class_name=self.class_name,
            docstring=self.docstring,
            type_id=self.type_id,
            fields=fields,
            credentials=referenced,
            body=body.rstrip(),
        )


class CodeGenerator:
    """Generate standalone Python sources for mapped nodes."""

    def generate_implementation(self, mapped_node: MappedNode) -> str:
        descriptor = mapped_node.descriptor
        try:
            source = descriptor.template(mapped_node.parameters, mapped_node.credentials)
        except Exception as e:
            logger.error("template_render_failed", node_id=mapped_node.id, type_id=mapped_node.type, error=str(e))
            raise TemplateRenderError(mapped_node.id, mapped_node.type, e) from e

        header = (
            f"# Generated node implementation\n"
            f"# Node: {mapped_node.name!r} (id {mapped_node.id!r})\n"
            f"# Type: {mapped_node.type} v{mapped_node.node.type_version}\n\n"
        )
        return header + source

    def generate_all(self, mapped_nodes: Iterable[MappedNode], stop_on_error: bool = False) -> Dict[str, str]:
        """Render every node; failures are collected unless ``stop_on_error`` is set.

        Each source is stored on its node. The returned mapping is keyed by id,
        so of two nodes sharing an id only the later one appears in it.
        """
        implementations: Dict[str, str] = {}
        failures: List[TemplateRenderError] = []

        for mapped_node in mapped_nodes:
            try:
                source = self.generate_implementation(mapped_node)
            except TemplateRenderError as e:
                if stop_on_error:
                    raise
                failures.append(e)
                continue

            mapped_node.implementation = source
            if mapped_node.id in implementations:
                logger.warning("duplicate_node_id", node_id=mapped_node.id)
            implementations[mapped_node.id] = source

        if failures:
            raise CodeGenerationError(failures, implementations)

        logger.debug("implementations_generated", count=len(implementations))
        return implementations

    def render_runtime_support(self) -> str:
        """Source of the generated project's ``nodes/base.py``."""
        return get_environment().get_template("runtime_base.py.j2").render()


def module_name(mapped_node: MappedNode) -> str:
    """A stable module name for a node's implementation file."""
    name = attribute_name(mapped_node.name).rstrip('_')
    node_id = re.sub(r'\W+', '_', mapped_node.id).strip('_').lower()
    return f"{name}_{node_id}" if node_id and node_id != name else name


def implementation_path(mapped_node: MappedNode) -> str:
    return f"nodes/{module_name(mapped_node)}.py"

