# cli/commands/nodes.py
"""Commands for browsing the supported node types."""

import sys
from typing import Optional

import click

from nodes import default_registry


@click.group()
def nodes():
    """List and inspect supported node types."""
    pass


@nodes.command(name='list')
@click.option('--category', '-c', type=click.Choice(['trigger', 'action']), help='Only show one category')
def list_nodes(category: Optional[str]):
    """List supported node types."""
    registry = default_registry()
    for group, type_ids in sorted(registry.get_nodes_by_category().items()):
        if category and group != category:
            continue
        click.echo(f"{group.title()} nodes:")
        for type_id in sorted(type_ids):
            click.echo(f"  • {type_id} - {registry.lookup(type_id).display_name}")


@nodes.command()
@click.argument('type_id')
def show(type_id: str):
    """Show parameters, credentials and dependencies of a node type."""
    descriptor = default_registry().lookup(type_id)
    if descriptor is None:
        click.echo(f"❌ Unsupported node type: {type_id}", err=True)
        sys.exit(1)

    click.echo(f"{descriptor.display_name} ({descriptor.type_id})")
    click.echo(f"  Category: {descriptor.category.value}")
    if descriptor.description:
        click.echo(f"  {descriptor.description}")

    if descriptor.parameters:
        click.echo("  Parameters:")
        for spec in descriptor.parameters:
            flags = " (required)" if spec.required else ""
            default = f" [default: {spec.default!r}]" if spec.default is not None else ""
            click.echo(f"    - {spec.name}: {spec.kind.value}{flags}{default}")

    if descriptor.credentials:
        click.echo("  Credentials:")
        for credential in descriptor.credentials:
            click.echo(f"    - {credential.slot}: {', '.join(credential.environment_variables)}")

    if descriptor.dependencies:
        click.echo(f"  Dependencies: {', '.join(descriptor.dependencies)}")
