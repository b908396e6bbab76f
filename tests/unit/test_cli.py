"""
Tests for the command line interface.
"""

import json
import logging

import pytest
import structlog
import yaml
from click.testing import CliRunner

from cli.main import cli
from converter import __version__


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI configures logging globally; undo it after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workflow_file(tmp_path):
    def write(document, name="workflow.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path
    return write


class TestGroup:
    """Test cases for the top level group."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        for command in ("stats", "validate", "map", "generate", "nodes"):
            assert command in result.output


class TestStatsCommand:
    """Test cases for `stats`."""

    def test_partial_support(self, runner, workflow_file, scenario_d_workflow):
        result = runner.invoke(cli, ["stats", str(workflow_file(scenario_d_workflow))])
        assert result.exit_code == 0
        assert "Supported nodes: 2 (66.67%)" in result.output
        assert "n8n-nodes-community.doesNotExist" in result.output

    def test_malformed_file(self, runner, workflow_file):
        result = runner.invoke(cli, ["stats", str(workflow_file({"connections": {}}))])
        assert result.exit_code == 1


class TestValidateCommand:
    """Test cases for `validate`."""

    def test_valid(self, runner, workflow_file, scenario_a_workflow):
        result = runner.invoke(cli, ["validate", str(workflow_file(scenario_a_workflow))])
        assert result.exit_code == 0
        assert "✅ Workflow is valid" in result.output

    def test_invalid(self, runner, workflow_file, scenario_d_workflow):
        result = runner.invoke(cli, ["validate", str(workflow_file(scenario_d_workflow))])
        assert result.exit_code == 1
        assert "Unsupported node type: n8n-nodes-community.doesNotExist" in result.output

    def test_yaml_file(self, runner, tmp_path):
        path = tmp_path / "workflow.yaml"
        path.write_text(
            "nodes:\n"
            "  - id: start\n"
            "    name: Start\n"
            "    type: n8n-nodes-base.manualTrigger\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 0

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["validate", str(tmp_path / "missing.json")])
        assert result.exit_code != 0


class TestMapCommand:
    """Test cases for `map`."""

    def test_json_output(self, runner, workflow_file, scenario_a_workflow):
        result = runner.invoke(cli, ["map", str(workflow_file(scenario_a_workflow))])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["metadata"]["totalNodes"] == 2
        assert data["environmentVariables"] == {"API_TOKEN": "your_api_token_here"}

    def test_yaml_output(self, runner, workflow_file, scenario_a_workflow):
        result = runner.invoke(cli, ["map", "--yaml", str(workflow_file(scenario_a_workflow))])
        assert result.exit_code == 0
        assert yaml.safe_load(result.output)["metadata"]["supportedNodes"] == 2

    def test_summary_output(self, runner, workflow_file, scenario_d_workflow):
        result = runner.invoke(cli, ["map", "--summary", str(workflow_file(scenario_d_workflow))])
        assert result.exit_code == 0
        assert "# Workflow Conversion Summary" in result.output
        assert "**Conversion blocked**" in result.output


class TestGenerateCommand:
    """Test cases for `generate`."""

    def test_generate_project(self, runner, workflow_file, scenario_a_workflow, tmp_path):
        output = tmp_path / "out"
        result = runner.invoke(cli, ["generate", str(workflow_file(scenario_a_workflow)), "-o", str(output)])
        assert result.exit_code == 0
        assert "✅ Generated 7 files" in result.output
        assert (output / "nodes" / "http_request_http_1.py").exists()
        assert "Copy .env.template to .env" in result.output

    def test_invalid_workflow_is_refused(self, runner, workflow_file, scenario_d_workflow, tmp_path):
        output = tmp_path / "out"
        result = runner.invoke(cli, ["generate", str(workflow_file(scenario_d_workflow)), "-o", str(output)])
        assert result.exit_code == 1
        assert "--allow-invalid" in result.output
        assert not output.exists()

    def test_allow_invalid(self, runner, workflow_file, scenario_d_workflow, tmp_path):
        output = tmp_path / "out"
        result = runner.invoke(
            cli, ["generate", str(workflow_file(scenario_d_workflow)), "-o", str(output), "--allow-invalid"],
        )
        assert result.exit_code == 0
        assert (output / "nodes" / "pass_2.py").exists()

    def test_existing_output(self, runner, workflow_file, scenario_a_workflow, tmp_path):
        output = tmp_path / "out"
        output.mkdir()
        path = str(workflow_file(scenario_a_workflow))

        result = runner.invoke(cli, ["generate", path, "-o", str(output)])
        assert result.exit_code == 1
        assert "--force" in result.output

        result = runner.invoke(cli, ["generate", path, "-o", str(output), "--force"])
        assert result.exit_code == 0


class TestNodesCommand:
    """Test cases for `nodes`."""

    def test_list(self, runner):
        result = runner.invoke(cli, ["nodes", "list"])
        assert result.exit_code == 0
        assert "Trigger nodes:" in result.output
        assert "n8n-nodes-base.webhook - Webhook" in result.output
        assert "n8n-nodes-base.httpRequest - HTTP Request" in result.output

    def test_list_category(self, runner):
        result = runner.invoke(cli, ["nodes", "list", "--category", "trigger"])
        assert "n8n-nodes-base.cron" in result.output
        assert "httpRequest" not in result.output

    def test_show(self, runner):
        result = runner.invoke(cli, ["nodes", "show", "n8n-nodes-base.httpRequest"])
        assert result.exit_code == 0
        assert "url: url (required)" in result.output
        assert "httpBasicAuth: HTTP_BASIC_USERNAME, HTTP_BASIC_PASSWORD" in result.output
        assert "Dependencies: httpx" in result.output

    def test_show_unknown(self, runner):
        result = runner.invoke(cli, ["nodes", "show", "n8n-nodes-base.nothing"])
        assert result.exit_code == 1
