"""
Pytest configuration and fixtures for the n8n workflow converter.
"""

import importlib
import itertools
import sys
import types
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from converter.config import Settings
from converter.generator import CodeGenerator
from converter.mapper import NodeMapper
from converter.models import NodeCategory
from converter.registry import CredentialSpec, NodeRegistry, NodeTypeDescriptor, ParameterKind, ParameterSpec
from nodes import default_registry


WEBHOOK = "n8n-nodes-base.webhook"
HTTP_REQUEST = "n8n-nodes-base.httpRequest"
NO_OP = "n8n-nodes-base.noOp"
UNKNOWN = "n8n-nodes-community.doesNotExist"


def synthetic_template(parameters, credentials):
    return f"class SyntheticNode:\n    parameters = {sorted(parameters)!r}\n    credentials = {sorted(credentials)!r}\n"


def failing_template(parameters, credentials):
    raise KeyError("missing_field")


@pytest.fixture
def registry():
    """The built-in node registry."""
    return default_registry()


@pytest.fixture
def settings():
    """Settings independent of the process environment."""
    return Settings(_env_file=None)


@pytest.fixture
def mapper(registry, settings):
    return NodeMapper(registry, settings)


@pytest.fixture
def synthetic_registry():
    """An isolated registry with test-only node types."""
    return NodeRegistry([
        NodeTypeDescriptor(
            type_id="test.trigger",
            display_name="Test Trigger",
            category=NodeCategory.TRIGGER,
            template=synthetic_template,
        ),
        NodeTypeDescriptor(
            type_id="test.action",
            display_name="Test Action",
            category=NodeCategory.ACTION,
            template=synthetic_template,
            parameters=(
                ParameterSpec("target", ParameterKind.STRING, required=True),
                ParameterSpec("retries", ParameterKind.NUMBER, default=3),
            ),
            dependencies=("httpx>=0.28.0", "leftpad", "vm2", "safe-eval"),
            credentials=(
                CredentialSpec("testApi", "get_test_api_credential", (("token", "TEST_API_TOKEN"),)),
            ),
        ),
        NodeTypeDescriptor(
            type_id="test.broken",
            display_name="Broken",
            category=NodeCategory.ACTION,
            template=failing_template,
        ),
    ])


@pytest.fixture
def scenario_a_workflow():
    """Webhook trigger feeding an HTTP request that uses an environment variable."""
    return {
        "name": "Scenario A",
        "nodes": [
            {
                "id": "webhook-1",
                "name": "Webhook",
                "type": WEBHOOK,
                "typeVersion": 1,
                "position": [250, 300],
                "parameters": {},
            },
            {
                "id": "http-1",
                "name": "HTTP Request",
                "type": HTTP_REQUEST,
                "typeVersion": 4,
                "position": [450, 300],
                "parameters": {
                    "url": "https://api.example.com/items",
                    "headers": {"Authorization": "Bearer {{ $env.API_TOKEN }}"},
                },
            },
        ],
        "connections": {
            "Webhook": {"main": [[{"node": "HTTP Request", "type": "main", "index": 0}]]},
        },
    }


@pytest.fixture
def scenario_d_workflow():
    """Three nodes, one of them of an unregistered type."""
    return {
        "name": "Scenario D",
        "nodes": [
            {"id": "1", "name": "Webhook", "type": WEBHOOK, "parameters": {}},
            {"id": "2", "name": "Pass", "type": NO_OP, "parameters": {}},
            {"id": "3", "name": "Mystery", "type": UNKNOWN, "parameters": {}},
        ],
        "connections": {
            "Webhook": {"main": [[{"node": "Pass", "type": "main", "index": 0}]]},
            "Pass": {"main": [[{"node": "Mystery", "type": "main", "index": 0}]]},
        },
    }


_package_ids = itertools.count()


@pytest.fixture
def load_generated(tmp_path):
    """Import generated node sources from a throwaway package next to a rendered base.py."""
    package_name = f"generated_nodes_{next(_package_ids)}"
    package_dir = tmp_path / package_name
    package_dir.mkdir()
    (package_dir / "base.py").write_text(CodeGenerator().render_runtime_support(), encoding="utf-8")

    package = types.ModuleType(package_name)
    package.__path__ = [str(package_dir)]
    sys.modules[package_name] = package

    def load(module_name, source):
        (package_dir / f"{module_name}.py").write_text(source, encoding="utf-8")
        importlib.invalidate_caches()
        return importlib.import_module(f"{package_name}.{module_name}")

    yield load

    for name in list(sys.modules):
        if name == package_name or name.startswith(f"{package_name}."):
            del sys.modules[name]
