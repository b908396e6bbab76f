"""Write a mapping result out as a standalone Python project."""

import shutil
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from converter.generator import module_name
from converter.mapper import NodeMapper
from converter.models import MappingResult
from converter.summary import generate_conversion_summary, generate_dependency_documentation

logger = structlog.get_logger(__name__)

NODES_PACKAGE_INIT = '''"""Generated workflow nodes."""

from dotenv import load_dotenv

load_dotenv()
'''

# Modules the writer emits itself
RESERVED_MODULES = frozenset({"__init__", "base"})


class ProjectWriter:
    """Lays out requirements, env template, runtime support and node modules."""

    def __init__(self, mapper: Optional[NodeMapper] = None):
        self.mapper = mapper or NodeMapper()

    def write(self, result: MappingResult, output_dir: Path, force: bool = False) -> List[Path]:
        output_dir = Path(output_dir)
        if output_dir.exists():
            if not force:
                raise FileExistsError(f"Output directory already exists: {output_dir}")
            shutil.rmtree(output_dir)

        self.mapper.generate_node_implementations(result.nodes)

        nodes_dir = output_dir / "nodes"
        nodes_dir.mkdir(parents=True)

        files: Dict[Path, str] = {
            output_dir / "requirements.txt": self._requirements(result),
            output_dir / ".env.template": self._env_template(result),
            output_dir / "CONVERSION.md": self._documentation(result),
            nodes_dir / "__init__.py": NODES_PACKAGE_INIT,
            nodes_dir / "base.py": self.mapper.generator.render_runtime_support(),
        }

        used = set(RESERVED_MODULES)
        for mapped_node in result.nodes:
            name = module_name(mapped_node)
            candidate, suffix = name, 2
            while candidate in used:
                candidate = f"{name}_{suffix}"
                suffix += 1
            used.add(candidate)
            files[nodes_dir / f"{candidate}.py"] = mapped_node.implementation

        for path, content in files.items():
            path.write_text(content, encoding="utf-8")

        logger.info("project_written", output_dir=str(output_dir), files=len(files))
        return list(files)

    def _requirements(self, result: MappingResult) -> str:
        lines = [f"{name}{version}" for name, version in result.dependencies.items()]
        return "\n".join(lines) + "\n"

    def _env_template(self, result: MappingResult) -> str:
        lines = []
        if result.environment_variables:
            lines.append("# Environment variables referenced by the workflow")
            lines.extend(f"{name}={value}" for name, value in result.environment_variables.items())
            lines.append("")
        if result.credential_variables:
            lines.append("# Credentials")
            lines.extend(f"{name}={value}" for name, value in result.credential_variables.items())
            lines.append("")
        return "\n".join(lines)

    def _documentation(self, result: MappingResult) -> str:
        return generate_conversion_summary(result) + "\n" + generate_dependency_documentation(result.dependencies)


def write_project(result: MappingResult, output_dir: Path, force: bool = False) -> List[Path]:
    """Convenience function using the default registry."""
    return ProjectWriter().write(result, output_dir, force)
