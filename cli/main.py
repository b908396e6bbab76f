# cli/main.py
"""Main CLI entry point for the n8n workflow converter."""

import click
from pathlib import Path
import sys

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from converter import __version__
from converter.config import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """n8n Workflow Converter - turn n8n workflows into standalone Python projects."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    configure_logging(verbose)


def register_commands():
    """Register all CLI commands."""
    from cli.commands.convert import stats, validate, map_command, generate
    cli.add_command(stats)
    cli.add_command(validate)
    cli.add_command(map_command)
    cli.add_command(generate)

    from cli.commands.nodes import nodes
    cli.add_command(nodes)


register_commands()


if __name__ == '__main__':
    cli()
