"""Sweep commands."""

from dataclasses import replace

import click

from pledgeflow.cli.error_handling import domain_errors
from pledgeflow.domain.events import LoggingEventSink
from pledgeflow.domain.processor import DueCycleProcessor
from pledgeflow.gateway.simulated import SimulatedGateway
from pledgeflow.utils.date_parser import parse_datetime


@click.group()
def sweep_group():
    """Process due donation cycles."""
    pass


@sweep_group.command("run")
@click.option(
    "--now",
    "now_str",
    default="now",
    show_default=True,
    help="Sweep time (ISO timestamp or date, UTC when no offset is given)",
)
@click.option("--workers", type=int, help="Worker concurrency (overrides PLEDGEFLOW_WORKERS)")
@click.option(
    "--decline-all",
    is_flag=True,
    help="Make the simulated gateway decline every capture",
)
@click.pass_context
def run_sweep(ctx, now_str: str, workers: int | None, decline_all: bool):
    """Capture every agreement that is due.

    Captures go through the built-in simulated gateway.

    Examples:
        pledgeflow sweep run
        pledgeflow sweep run --now 2024-03-01T09:00:00
    """
    config = ctx.obj["config"]
    with domain_errors(ctx):
        now = parse_datetime(now_str)
        if workers is not None:
            config = replace(config, worker_concurrency=workers)

    processor = DueCycleProcessor(
        ctx.obj["db"],
        SimulatedGateway(decline_all=decline_all),
        event_sink=LoggingEventSink(),
        config=config,
    )
    report = processor.run_sweep(now)

    click.echo(f"Sweep at {now.isoformat()}")
    click.echo(f"  Processed: {report.processed}")
    click.echo(f"  Succeeded: {report.succeeded}")
    click.echo(f"  Failed:    {report.failed}")
    click.echo(f"  Skipped:   {report.skipped}")
    if report.conflicts:
        click.echo(f"  Conflicts: {report.conflicts}")
    if report.unknown_outcomes:
        click.echo(f"  Unknown outcomes: {report.unknown_outcomes}")
    for message in report.errors:
        click.echo(f"  Error: {message}", err=True)


def register_commands(cli):
    """Register sweep commands with main CLI."""
    cli.add_command(sweep_group, name="sweep")
