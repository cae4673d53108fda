"""Reporting commands."""

from datetime import date
from decimal import Decimal

import click

from pledgeflow.cli.error_handling import domain_errors
from pledgeflow.cli.formatting import echo_agreement_row, format_amount
from pledgeflow.domain.reporting import ReportingService
from pledgeflow.utils.date_parser import parse_date


def _resolve_today(ctx, today: str | None) -> date:
    if today is None:
        return date.today()
    with domain_errors(ctx):
        return parse_date(today)


@click.group()
def report_group():
    """Schedules, forecasts and statistics."""
    pass


@report_group.command("upcoming")
@click.option("--days", default=30, show_default=True, type=int, help="Look-ahead window")
@click.option("--today", help="Reference date (defaults to today)")
@click.pass_context
def upcoming(ctx, days: int, today: str | None):
    """List donations due in the next DAYS days."""
    reference = _resolve_today(ctx, today)
    with domain_errors(ctx):
        cycles = ReportingService(ctx.obj["db"]).upcoming(days, reference)

    if not cycles:
        click.echo(f"No donations due in the next {days} days.")
        return
    for cycle in cycles:
        click.echo(
            f"{cycle.due_date} | Agreement {cycle.agreement_id:4d} | "
            f"{cycle.donor_id:16s} | {format_amount(cycle.amount):>12s}"
        )


@report_group.command("overdue")
@click.option("--today", help="Reference date (defaults to today)")
@click.pass_context
def overdue(ctx, today: str | None):
    """List agreements whose current cycle is past due."""
    reference = _resolve_today(ctx, today)
    agreements = ReportingService(ctx.obj["db"]).overdue(reference)
    if not agreements:
        click.echo("No overdue agreements.")
        return
    for agreement in agreements:
        echo_agreement_row(agreement)


@report_group.command("forecast")
@click.option("--months", default=12, show_default=True, type=int, help="Months to project")
@click.option("--today", help="Reference date (defaults to today)")
@click.pass_context
def forecast(ctx, months: int, today: str | None):
    """Projected donation totals per month."""
    reference = _resolve_today(ctx, today)
    with domain_errors(ctx):
        rows = ReportingService(ctx.obj["db"], config=ctx.obj["config"]).forecast(months, reference)

    if not rows:
        click.echo("Nothing scheduled in the forecast window.")
        return

    click.echo(f"{'Month':8s} | {'Donations':>9s} | {'Amount':>14s}")
    click.echo("-" * 38)
    for row in rows:
        click.echo(f"{row.month:8s} | {row.cycle_count:9d} | {format_amount(row.total_amount):>14s}")
    total = sum((row.total_amount for row in rows), Decimal("0"))
    click.echo("-" * 38)
    click.echo(f"{'Total':8s} | {sum(r.cycle_count for r in rows):9d} | {format_amount(total):>14s}")


@report_group.command("stats")
@click.pass_context
def stats(ctx):
    """Agreement and donation counts."""
    result = ReportingService(ctx.obj["db"]).stats()

    click.echo("Agreements:")
    for state, count in result.agreements_by_state.items():
        click.echo(f"  {state:10s} {count:6d}")
    click.echo("Donations:")
    for status, count in result.instances_by_status.items():
        click.echo(f"  {status:10s} {count:6d}")
    click.echo(f"Captured total: {format_amount(result.captured_amount)}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
