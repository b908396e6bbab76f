"""
Tests for converter.expressions: the expression scanner and marker builder.
"""

import pytest

from converter.expressions import (
    BracedExpression,
    EnvReference,
    EnvToken,
    ExpressionReference,
    Literal,
    TemplateString,
    build_marker,
    find_env_references,
    has_expression,
    match_env_reference,
    parse_path,
    parse_template,
)


# ============================================================================
# SCANNER TESTS
# ============================================================================

class TestParseTemplate:
    """Test cases for splitting strings into segments."""

    def test_plain_text_is_single_literal(self):
        assert parse_template("hello world") == [Literal("hello world")]

    def test_braced_expression_is_stripped(self):
        assert parse_template("{{  $json.id  }}") == [BracedExpression("$json.id")]

    def test_mixed_segments_keep_order(self):
        segments = parse_template("Hi {{ $json.name }}, key $env.API_KEY!")
        assert segments == [
            Literal("Hi "),
            BracedExpression("$json.name"),
            Literal(", key "),
            EnvToken("API_KEY"),
            Literal("!"),
        ]

    def test_bracket_env_form(self):
        assert parse_template('$env["DB_URL"]') == [EnvToken("DB_URL")]
        assert parse_template("$env['DB_URL']") == [EnvToken("DB_URL")]

    def test_expression_prefix_is_dropped(self):
        assert parse_template("={{ $json.id }}") == [BracedExpression("$json.id")]

    def test_prefix_kept_without_expression(self):
        assert parse_template("=5") == [Literal("=5")]

    def test_unterminated_braces_are_literal(self):
        assert parse_template("{{ $json.id") == [Literal("{{ $json.id")]

    def test_empty_braces_are_literal(self):
        assert parse_template("{{}}") == [Literal("{{}}")]

    def test_bare_dollar_env_without_name_is_literal(self):
        assert parse_template("$env") == [Literal("$env")]

    def test_has_expression(self):
        assert has_expression("{{ $json.x }}")
        assert has_expression("$env.TOKEN")
        assert not has_expression("no markers here")


# ============================================================================
# ENV REFERENCE TESTS
# ============================================================================

class TestEnvReferences:
    """Test cases for environment variable detection."""

    @pytest.mark.parametrize("expression", ["$env.API_KEY", '$env["API_KEY"]', " $env['API_KEY'] "])
    def test_match_env_reference(self, expression):
        assert match_env_reference(expression) == "API_KEY"

    def test_match_env_reference_rejects_compound(self):
        assert match_env_reference("$env.API_KEY + '1'") is None
        assert match_env_reference("$json.API_KEY") is None

    def test_find_env_references_order_and_uniqueness(self):
        text = "$env.B {{ $env.A }} $env.B {{ $env['C'] || $env.A }}"
        assert find_env_references(text) == ["B", "A", "C"]

    def test_find_env_references_none(self):
        assert find_env_references("{{ $json.value }}") == []


# ============================================================================
# PATH TESTS
# ============================================================================

class TestParsePath:
    """Test cases for simple data paths."""

    def test_dotted_path(self):
        assert parse_path("$json.customer.email") == ("$json", "customer", "email")

    def test_index_and_quoted_keys(self):
        assert parse_path('$json.items[0]["id"]') == ("$json", "items", "0", "id")

    def test_root_only(self):
        assert parse_path("$json") == ("$json",)

    @pytest.mark.parametrize("expression", ["$json.a + 1", "Math.max(1, 2)", "'text'", "$json.a()"])
    def test_non_paths(self, expression):
        assert parse_path(expression) is None


# ============================================================================
# MARKER TESTS
# ============================================================================

class TestBuildMarker:
    """Test cases for rewriting parameter strings."""

    def test_plain_string_unchanged(self):
        assert build_marker("https://example.com") == "https://example.com"

    def test_bare_env_reference(self):
        assert build_marker("$env.API_KEY") == EnvReference("API_KEY")

    def test_braced_env_reference(self):
        assert build_marker("={{ $env.API_KEY }}") == EnvReference("API_KEY")

    def test_braced_path(self):
        marker = build_marker("{{ $json.user.id }}")
        assert marker == ExpressionReference("$json.user.id")
        assert marker.path == ("$json", "user", "id")

    def test_mixed_text_becomes_template(self):
        marker = build_marker("Bearer {{ $env.TOKEN }}")
        assert marker == TemplateString(("Bearer ", EnvReference("TOKEN")))
        assert marker.is_static

    def test_template_with_runtime_part_is_not_static(self):
        marker = build_marker("Hello {{ $json.name }}")
        assert not marker.is_static

    def test_to_dict_forms(self):
        assert EnvReference("A").to_dict() == {"$env": "A"}
        assert ExpressionReference("$json.a").to_dict() == {"$expression": "$json.a"}
        assert build_marker("x $env.A").to_dict() == {"$template": ["x ", {"$env": "A"}]}
