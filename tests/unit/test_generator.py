"""
Tests for converter.generator.
"""

import os

import pytest

from converter.exceptions import CodeGenerationError, TemplateRenderError
from converter.expressions import EnvReference, ExpressionReference, TemplateString
from converter.generator import (
    CodeGenerator,
    NodeTemplate,
    attribute_name,
    implementation_path,
    module_name,
    pascal_case,
    python_value,
    snake_case,
)
from converter.models import MappedNode, NodeCategory, NodeInstance
from converter.registry import CredentialSpec

ECHO_BODY = '''
    def execute(self, items, context):
        return [
            {"value": self.param({{ attributes["value"] | python_value }}, item, context)}
            for item in items
        ]
'''

ECHO_CREDENTIALS = (CredentialSpec("echoApi", "get_echo_api_credential", (("token", "ECHO_TOKEN"),)),)


@pytest.fixture
def echo_template():
    return NodeTemplate(
        type_id="test.echo",
        class_name="EchoNode",
        category=NodeCategory.ACTION,
        body=ECHO_BODY,
        credentials=ECHO_CREDENTIALS,
        docstring="Echo a value for each item.",
    )


@pytest.fixture(scope="module")
def runtime():
    namespace = {"__name__": "generated_base"}
    exec(compile(CodeGenerator().render_runtime_support(), "base.py", "exec"), namespace)
    return namespace


def _mapped(registry, type_id, node_id="n1", name="Node", parameters=None):
    descriptor = registry.lookup(type_id)
    node = NodeInstance(id=node_id, name=name, type=type_id, parameters=parameters or {})
    return MappedNode(node=node, descriptor=descriptor, category=descriptor.category, parameters=parameters or {})


# ============================================================================
# VALUE RENDERING TESTS
# ============================================================================

class TestPythonValue:
    """Test cases for rendering resolved values as Python source."""

    def test_env_reference(self):
        assert python_value(EnvReference("API_KEY")) == "os.environ.get('API_KEY', '')"

    def test_expression_reference(self):
        assert python_value(ExpressionReference("$json.id")) == "Expression('$json.id')"

    def test_static_template_concatenates(self):
        value = TemplateString(("Bearer ", EnvReference("TOKEN")))
        assert python_value(value) == "'Bearer ' + os.environ.get('TOKEN', '')"

    def test_runtime_template(self):
        value = TemplateString(("Hi ", ExpressionReference("$json.name")))
        assert python_value(value) == "Template('Hi ', Expression('$json.name'))"

    def test_literals(self):
        assert python_value({"a": [1, None, True, 2.5], "b": "x"}) == "{'a': [1, None, True, 2.5], 'b': 'x'}"
        assert python_value(("x", 1)) == "['x', 1]"
        assert python_value(NodeCategory.TRIGGER) == "'trigger'"

    def test_non_finite_floats(self):
        assert python_value(float("nan")) == "float('nan')"
        assert python_value(float("-inf")) == "float('-inf')"

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError):
            python_value(object())

    def test_rendered_values_evaluate(self, runtime, monkeypatch):
        monkeypatch.setenv("TOKEN", "abc")
        namespace = {"os": os, "Expression": runtime["Expression"], "Template": runtime["Template"]}
        assert eval(python_value(TemplateString(("Bearer ", EnvReference("TOKEN")))), namespace) == "Bearer abc"
        expression = eval(python_value(ExpressionReference("$json.id")), namespace)
        assert expression.resolve({"id": 9}, {}) == 9


class TestNames:
    """Test cases for identifier helpers."""

    @pytest.mark.parametrize("key,expected", [
        ("httpMethod", "http_method"),
        ("URL", "url"),
        ("my-key", "my_key"),
        ("HTTP Request", "http_request"),
        ("class", "class_"),
        ("execute", "execute_"),
        ("node_type", "node_type_"),
        ("1st", "p_1st"),
        ("", "param"),
        ("!!!", "param"),
    ])
    def test_attribute_name(self, key, expected):
        assert attribute_name(key) == expected

    def test_case_helpers(self):
        assert snake_case("HTTPRequest") == "http_request"
        assert snake_case("keepOnlySet") == "keep_only_set"
        assert pascal_case("http request-node") == "HttpRequestNode"

    def test_module_name(self, registry):
        mapped = _mapped(registry, "n8n-nodes-base.noOp", node_id="No-Op 1", name="Do Nothing")
        assert module_name(mapped) == "do_nothing_no_op_1"
        assert implementation_path(mapped) == "nodes/do_nothing_no_op_1.py"

    def test_module_name_without_distinct_id(self, registry):
        mapped = _mapped(registry, "n8n-nodes-base.noOp", node_id="pass", name="Pass")
        assert module_name(mapped) == "pass"


# ============================================================================
# TEMPLATE TESTS
# ============================================================================

class TestNodeTemplate:
    """Test cases for the class template."""

    def test_renders_class(self, echo_template):
        source = echo_template({"value": "static", "class": 1}, {})
        compile(source, "echo.py", "exec")
        assert "class EchoNode(BaseActionNode):" in source
        assert "from .base import BaseActionNode, Expression, Template" in source
        assert "node_type = 'test.echo'" in source
        assert "self.value = 'static'" in source
        assert "self.class_ = 1" in source
        assert '"""Echo a value for each item."""' in source

    def test_markers_render_as_accessors(self, echo_template):
        source = echo_template({"value": ExpressionReference("$json.id"), "key": EnvReference("KEY")}, {})
        assert "self.value = Expression('$json.id')" in source
        assert "self.key = os.environ.get('KEY', '')" in source
        assert "$env" not in source

    def test_credential_accessor(self, echo_template):
        source = echo_template({"value": "v"}, {"echoApi": "My Echo", "otherApi": "ignored"})
        compile(source, "echo.py", "exec")
        assert "def get_echo_api_credential(self):" in source
        assert "# echoApi credential 'My Echo'" in source
        assert "'token': os.environ.get('ECHO_TOKEN')," in source
        assert "otherApi" not in source

    def test_duplicate_attribute_names(self, echo_template):
        source = echo_template({"value": "v", "a-b": 1, "a_b": 2}, {})
        assert "self.a_b = 1" in source
        assert "self.a_b_2 = 2" in source

    def test_generated_node_runs(self, echo_template, load_generated):
        source = echo_template({"value": ExpressionReference("$json.name")}, {})
        module = load_generated("echo", source)
        node = module.EchoNode()
        assert node.execute([{"name": "a"}, {"name": "b"}], {}) == [{"value": "a"}, {"value": "b"}]

    def test_overrides(self, echo_template, load_generated):
        module = load_generated("echo", echo_template({"value": "x"}, {}))
        node = module.EchoNode(value="y")
        assert node.execute([{}], {}) == [{"value": "y"}]


# ============================================================================
# GENERATOR TESTS
# ============================================================================

class TestCodeGenerator:
    """Test cases for rendering mapped nodes."""

    def test_header(self, synthetic_registry):
        mapped = _mapped(synthetic_registry, "test.trigger", node_id="t-1", name="Start")
        source = CodeGenerator().generate_implementation(mapped)
        assert source.startswith("# Generated node implementation\n# Node: 'Start' (id 't-1')\n")
        assert "# Type: test.trigger v1" in source
        assert "class SyntheticNode" in source

    def test_render_failure(self, synthetic_registry):
        mapped = _mapped(synthetic_registry, "test.broken", node_id="b-1")
        with pytest.raises(TemplateRenderError) as info:
            CodeGenerator().generate_implementation(mapped)
        assert info.value.node_id == "b-1"
        assert info.value.type_id == "test.broken"
        assert isinstance(info.value.cause, KeyError)

    def test_generate_all_collects_failures(self, synthetic_registry):
        nodes = [
            _mapped(synthetic_registry, "test.trigger", node_id="ok"),
            _mapped(synthetic_registry, "test.broken", node_id="bad"),
        ]
        with pytest.raises(CodeGenerationError) as info:
            CodeGenerator().generate_all(nodes)
        assert [failure.node_id for failure in info.value.failures] == ["bad"]
        assert list(info.value.implementations) == ["ok"]

    def test_generate_all_stop_on_error(self, synthetic_registry):
        nodes = [
            _mapped(synthetic_registry, "test.broken", node_id="bad"),
            _mapped(synthetic_registry, "test.trigger", node_id="ok"),
        ]
        with pytest.raises(TemplateRenderError):
            CodeGenerator().generate_all(nodes, stop_on_error=True)

    def test_generate_all_keys_by_id(self, synthetic_registry):
        nodes = [_mapped(synthetic_registry, "test.trigger", node_id=f"n{i}") for i in range(3)]
        assert list(CodeGenerator().generate_all(nodes)) == ["n0", "n1", "n2"]


    def test_generate_all_stores_source_on_each_node(self, synthetic_registry):
        nodes = [
            _mapped(synthetic_registry, "test.trigger", node_id="dup", name="First"),
            _mapped(synthetic_registry, "test.trigger", node_id="dup", name="Second"),
        ]
        implementations = CodeGenerator().generate_all(nodes)
        assert "# Node: 'First'" in nodes[0].implementation
        assert "# Node: 'Second'" in nodes[1].implementation
        assert implementations == {"dup": nodes[1].implementation}

# ============================================================================
# RUNTIME SUPPORT TESTS
# ============================================================================

class TestRuntimeSupport:
    """Test cases for the generated base module."""

    def test_compiles(self):
        compile(CodeGenerator().render_runtime_support(), "base.py", "exec")

    def test_json_paths(self, runtime):
        Expression = runtime["Expression"]
        item = {"user": {"name": "Ada"}, "items": [1, 2]}
        assert Expression("$json.user.name").resolve(item, {}) == "Ada"
        assert Expression("$json.items[1]").resolve(item, {}) == 2
        assert Expression('$json["user"]["name"]').resolve(item, {}) == "Ada"
        assert Expression("$json.missing.deeper").resolve(item, {}) is None
        assert Expression("$json.items[5]").resolve(item, {}) is None

    def test_env_path(self, runtime, monkeypatch):
        monkeypatch.setenv("RUNTIME_VALUE", "42")
        assert runtime["Expression"]("$env.RUNTIME_VALUE").resolve({}, {}) == "42"

    def test_node_path(self, runtime):
        context = {"nodes": {"Fetch": {"json": {"id": 5}}}}
        assert runtime["Expression"]('$node["Fetch"].json.id').resolve({}, context) == 5

    def test_other_roots_come_from_context(self, runtime):
        assert runtime["Expression"]("$workflow.id").resolve({}, {"workflow": {"id": "w1"}}) == "w1"

    def test_non_path_needs_porting(self, runtime):
        with pytest.raises(NotImplementedError):
            runtime["Expression"]("$json.a + 1").resolve({}, {})

    def test_template(self, runtime):
        template = runtime["Template"]("Hi ", runtime["Expression"]("$json.name"), "!")
        assert template.resolve({"name": "Bo"}, {}) == "Hi Bo!"
        assert template.resolve({}, {}) == "Hi !"

    def test_resolve_value_nested(self, runtime):
        value = {"a": [runtime["Expression"]("$json.x")], "b": 1}
        assert runtime["resolve_value"](value, {"x": 3}, {}) == {"a": [3], "b": 1}

    def test_param_default(self, runtime):
        node = runtime["BaseActionNode"]()
        node.configure({"present": runtime["Expression"]("$json.v")})
        assert node.param("missing", default="d") == "d"
        assert node.param("present", {"v": 1}) == 1
        assert node.category == "action"

    def test_trigger_passes_items_through(self, runtime):
        trigger = runtime["BaseTriggerNode"]()
        assert trigger.execute([{"a": 1}], {}) == [{"a": 1}]
        with pytest.raises(NotImplementedError):
            trigger.start(lambda items: None)
