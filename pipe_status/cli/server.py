"""Server command - check one stage on this machine."""

import click

from pipe_status.cli.logging import configure_cli_logging
from pipe_status.dispatch import serve


@click.command("server")
@click.option(
    "--request",
    "request_json",
    required=True,
    help="Request JSON written by the client",
)
def server(request_json: str) -> None:
    """Check one stage and print the framed response on stdout.

    The big disk comes from the request, or from BIGGUS_DISKUS when the
    request leaves it unset. Failures are reported inside the response;
    the exit status is 0 whenever a response was written.
    """
    configure_cli_logging("server")
    serve(request_json)
