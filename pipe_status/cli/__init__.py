"""CLI interface for pipe-status.

Two commands share one executable: ``client`` decides where each stage is
checked and collects the results, ``server`` performs one check and prints
the framed response.
"""

import logging

import click
from dotenv import load_dotenv

from pipe_status import __version__

# Load environment variables (e.g. BIGGUS_DISKUS) from a .env file
load_dotenv()

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the pipe-status version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """pipe-status - check pipeline stages across machines.

    \b
      pipe-status client 1001 1002 diffusion   Check runs of a pipeline
      pipe-status server --request=JSON        Check one stage here
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def register_commands() -> None:
    """Register all commands with the main CLI."""
    from pipe_status.cli.client import client
    from pipe_status.cli.server import server

    main.add_command(client)
    main.add_command(server)


# Register commands at import time
register_commands()

__all__ = ["main"]
