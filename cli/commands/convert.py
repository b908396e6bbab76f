# cli/commands/convert.py
"""Workflow inspection, mapping and project generation commands."""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from converter.exceptions import CodeGenerationError, ConverterError
from converter.mapper import NodeMapper
from converter.parser import parse_workflow_file
from converter.project import ProjectWriter
from converter.summary import calculate_complexity_score, estimate_conversion_time, generate_conversion_summary


def _load(workflow_file: Path):
    try:
        return parse_workflow_file(workflow_file)
    except ConverterError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


@click.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def stats(workflow_file: Path):
    """Show how much of a workflow can be converted."""
    graph = _load(workflow_file)
    mapper = NodeMapper()
    result = mapper.get_workflow_mapping_stats(graph)

    click.echo(f"📊 Workflow: {graph.name or workflow_file.stem}")
    click.echo(f"   Total nodes:     {result.total_nodes}")
    click.echo(f"   Supported nodes: {result.supported_nodes} ({result.supported_percentage:.2f}%)")
    click.echo(f"   Complexity:      {calculate_complexity_score(graph):g}")
    click.echo(f"   Estimated time:  {estimate_conversion_time(graph, mapper.registry)} min")

    if result.unsupported_nodes:
        click.echo("⚠️  Unsupported node types:")
        for type_id in dict.fromkeys(result.unsupported_nodes):
            click.echo(f"   • {type_id}")


@click.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(workflow_file: Path):
    """Validate a workflow against the supported node types."""
    graph = _load(workflow_file)
    result = NodeMapper().validator.validate(graph)

    for error in result.errors:
        click.echo(f"❌ {error}")
    for type_id in result.unsupported_nodes:
        click.echo(f"❌ Unsupported node type: {type_id}")
    for warning in result.warnings:
        click.echo(f"⚠️  {warning}")

    if result.valid:
        click.echo("✅ Workflow is valid")
    else:
        click.echo(f"❌ Validation failed with {len(result.errors) + len(result.unsupported_nodes)} problem(s)")
        sys.exit(1)


@click.command(name='map')
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--json/--yaml', 'as_json', default=True, help='Output format (default: JSON)')
@click.option('--summary', is_flag=True, help='Print a markdown summary instead of the raw result')
def map_command(workflow_file: Path, as_json: bool, summary: bool):
    """Map a workflow and print the mapping result."""
    graph = _load(workflow_file)
    result = NodeMapper().map_workflow(graph)

    if summary:
        click.echo(generate_conversion_summary(result), nl=False)
    elif as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(yaml.safe_dump(result.to_dict(), sort_keys=False), nl=False)


@click.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', type=click.Path(path_type=Path),
              help='Output directory (default: ./generated-<workflow-name>)')
@click.option('--force', '-f', is_flag=True, help='Overwrite existing output directory')
@click.option('--allow-invalid', is_flag=True, help='Generate supported nodes even if validation fails')
def generate(workflow_file: Path, output: Optional[Path], force: bool, allow_invalid: bool):
    """Generate a standalone Python project from a workflow."""
    graph = _load(workflow_file)
    mapper = NodeMapper()
    result = mapper.map_workflow(graph)

    if not result.validation.valid and not allow_invalid:
        click.echo("❌ Workflow is not valid:", err=True)
        for error in result.validation.errors:
            click.echo(f"   • {error}", err=True)
        for type_id in result.validation.unsupported_nodes:
            click.echo(f"   • Unsupported node type: {type_id}", err=True)
        click.echo("   Use --allow-invalid to generate the supported nodes anyway.", err=True)
        sys.exit(1)

    if output is None:
        name = (graph.name or workflow_file.stem).lower().replace(' ', '_')
        output = Path.cwd() / f"generated-{name}"

    try:
        files = ProjectWriter(mapper).write(result, output, force=force)
    except FileExistsError as e:
        click.echo(f"❌ {e}. Use --force to overwrite.", err=True)
        sys.exit(1)
    except CodeGenerationError as e:
        click.echo(f"❌ {e}", err=True)
        for failure in e.failures:
            click.echo(f"   • {failure}", err=True)
        sys.exit(1)

    click.echo(f"✅ Generated {len(files)} files in {output}")
    for warning in result.validation.warnings:
        click.echo(f"⚠️  {warning}")
    if result.environment_variables or result.credential_variables:
        click.echo("📝 Copy .env.template to .env and fill in the values")
