"""Client command - check every stage of a pipeline for a set of runs."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from pipe_status import settings
from pipe_status.cli.logging import configure_cli_logging
from pipe_status.dispatch import RunReport, run_pipeline
from pipe_status.pipeline import ConfigCollection, PipelineConfigError
from pipe_status.remote import SSHConfigMissingError, connect_hosts, run_local

logger = logging.getLogger(__name__)

console = Console()


def parse_big_disks(values: tuple[str, ...]) -> dict[str, str]:
    """Parse ``HOST:PATH`` pairs into a host → big-disk mapping.

    Raises:
        click.BadParameter: If a value has no host or no path.
    """
    big_disks: dict[str, str] = {}
    for value in values:
        host, sep, path = value.partition(":")
        if not sep or not host or not path:
            raise click.BadParameter(
                f"'{value}' must look like HOST:PATH", param_hint="--big-disk"
            )
        big_disks[host] = path
    return big_disks


@click.command("client")
@click.argument("run_numbers", nargs=-1, required=True)
@click.argument("pipeline")
@click.option(
    "-b",
    "--big-disk",
    "big_disk",
    multiple=True,
    metavar="HOST:PATH",
    help="Big-disk path to use on HOST (repeatable)",
)
@click.option(
    "-p",
    "--pipe-configs",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of pipeline YAML files (default: ~/.pipe_configs)",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds to wait for each response",
)
@click.option("-v", "--verbose", is_flag=True, help="Log progress to the console")
def client(
    run_numbers: tuple[str, ...],
    pipeline: str,
    big_disk: tuple[str, ...],
    pipe_configs: Path | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """Check the stages of PIPELINE for RUN_NUMBERS.

    Stages run locally until a stage names preferred computers; from then
    on every later stage is also checked on those hosts over SSH.

    \b
    Examples:
      pipe-status client N60001 N60002 diffusion
      pipe-status client N60001 diffusion -b civmcluster1:/glusterspace
    """
    configure_cli_logging("client", verbose=verbose)
    big_disks = parse_big_disks(big_disk)

    config_dir = pipe_configs or settings.get_pipe_config_dir()
    try:
        pipe = ConfigCollection.from_dir(config_dir).get_pipe(pipeline)
    except PipelineConfigError as e:
        raise click.ClickException(str(e)) from e
    except KeyError as e:
        raise click.ClickException(e.args[0]) from e

    try:
        pool = connect_hosts(
            pipe.hosts(), settings.get_ssh_config_path(), timeout=timeout
        )
    except SSHConfigMissingError as e:
        raise click.ClickException(str(e)) from e

    with pool:
        report = run_pipeline(
            pipe,
            run_numbers,
            pool=pool,
            big_disks=big_disks,
            local_runner=partial(run_local, None, timeout=timeout),
        )

    print_report(report)


def print_report(report: RunReport) -> None:
    """Render a run report as rich tables."""
    if report.failures:
        failures = Table(title="Unavailable hosts")
        failures.add_column("Host", style="cyan")
        failures.add_column("Error", style="red")
        failures.add_column("Suggestion", style="dim")
        for failure in report.failures.values():
            failures.add_row(failure.host, failure.message, failure.suggestion or "")
        console.print(failures)

    table = Table(title=f"Pipeline {report.pipeline}")
    table.add_column("Stage", style="cyan")
    table.add_column("Host", style="white")
    table.add_column("State")
    table.add_column("Progress", justify="right")
    table.add_column("Runs", style="dim")

    for result in report.results:
        host = result.host or "local"
        status = result.response.success
        if status is None:
            error = result.response.error.value
            table.add_row(result.stage, host, f"[red]✗ {error}[/red]", "-", "")
            continue
        runs = ", ".join(f"{r.run_number} {r.found}/{r.expected}" for r in status.runs)
        table.add_row(
            result.stage,
            host,
            _state_markup(status.state.value),
            f"{status.progress:.0%}",
            runs,
        )

    console.print(table)


def _state_markup(state: str) -> str:
    if state == "Complete":
        return f"[green]✓ {state}[/green]"
    if state == "InProgress":
        return f"[yellow]{state}[/yellow]"
    return f"[dim]{state}[/dim]"
