"""
Command Line Interface for ComposeFlow.
"""
import json
import logging
import sys

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from ..CONVERTERS.to_compose import graph_to_yaml
from ..MODELS.errors import ComposeFlowError
from ..MODELS.graph import ComposeGraph, Handle, NodeType
from ..PARSERS.compose_parser import ComposeParser
from ..UTILS.yaml_io import COMPOSE_FILENAME, load_document_text
from ..VALIDATION.connection_rules import is_valid_connection

NODE_TYPES = [t.value for t in NodeType]
HANDLES = [h.value for h in Handle]


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Log skipped edges and dropped entries')
@click.pass_context
def cli(ctx, verbose):
    """
    ComposeFlow - Docker Compose as a graph.

    Converts between editor graphs (JSON) and docker-compose documents (YAML).
    """
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument('graph_file', type=click.File('r'))
@click.option('--out', '-o', default=COMPOSE_FILENAME, envvar='COMPOSEFLOW_OUTPUT',
              show_default=True, help='Output compose file, or - for stdout')
def generate(graph_file, out):
    """Generate a compose file from a graph JSON file."""
    try:
        graph = ComposeGraph.from_canvas(json.load(graph_file))
    except (ValueError, ValidationError) as e:
        click.echo(f"Error: invalid graph file: {e}", err=True)
        sys.exit(1)

    text = graph_to_yaml(graph)
    if out == '-':
        click.echo(text, nl=False)
        return
    with open(out, 'w', encoding='utf-8') as f:
        f.write(text)
    click.echo(f"Compose file written to {out}")


@cli.command(name='import')
@click.argument('compose_file', default=COMPOSE_FILENAME, envvar='COMPOSEFLOW_FILE', type=click.File('rb'))
@click.option('--out', '-o', default='-', help='Output graph JSON file, or - for stdout')
@click.option('--two-pass', is_flag=True, help='Resolve depends_on entries that name later services')
def import_(compose_file, out, two_pass):
    """Import a compose file as a graph JSON file."""
    parser = ComposeParser(resolve_forward_dependencies=two_pass)
    try:
        graph = parser.parse_from_string(load_document_text(compose_file.read()))
    except ComposeFlowError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    text = json.dumps(graph.to_canvas(), indent=2)
    if out == '-':
        click.echo(text)
        return
    with open(out, 'w', encoding='utf-8') as f:
        f.write(text + "\n")
    click.echo(f"Graph with {len(graph.nodes)} nodes and {len(graph.edges)} edges written to {out}")


@cli.command()
@click.argument('source_type', type=click.Choice(NODE_TYPES))
@click.argument('target_type', type=click.Choice(NODE_TYPES))
@click.argument('source_handle', type=click.Choice(HANDLES))
@click.argument('target_handle', type=click.Choice(HANDLES))
def check(source_type, target_type, source_handle, target_handle):
    """Check whether a connection between two node handles is allowed."""
    if is_valid_connection(source_type, target_type, source_handle, target_handle):
        click.echo("valid")
    else:
        click.echo("invalid")
        sys.exit(1)


def main():
    """
    Main entry point for the CLI.
    """
    load_dotenv()
    cli(obj={})


if __name__ == '__main__':
    main()
