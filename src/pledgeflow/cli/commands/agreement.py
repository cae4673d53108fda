"""Agreement management commands."""

import click

from pledgeflow.cli.error_handling import domain_errors
from pledgeflow.cli.formatting import echo_agreement, echo_agreement_row, echo_instance_row
from pledgeflow.domain.agreement import AgreementService
from pledgeflow.domain.entities import (
    AgreementPatch,
    AgreementSpec,
    AgreementState,
    Frequency,
)
from pledgeflow.domain.reporting import ReportingService
from pledgeflow.utils.amount_parser import parse_amount
from pledgeflow.utils.date_parser import parse_date

FREQUENCY_CHOICE = click.Choice([f.value for f in Frequency], case_sensitive=False)
STATE_CHOICE = click.Choice([s.value for s in AgreementState], case_sensitive=False)


def _service(ctx) -> AgreementService:
    return AgreementService(ctx.obj["db"], config=ctx.obj["config"])


@click.group()
def agreement_group():
    """Manage recurring donation agreements."""
    pass


@agreement_group.command("create")
@click.option("--donor", "donor_id", required=True, help="Donor ID")
@click.option("--amount", required=True, help="Amount per cycle (e.g., 500 or '₹1,000')")
@click.option("--frequency", required=True, type=FREQUENCY_CHOICE, help="Recurrence cadence")
@click.option(
    "--anchor",
    default="today",
    show_default=True,
    help="Start date the schedule is computed from (YYYY-MM-DD or relative like 'today')",
)
@click.option("--limit", "occurrence_limit", type=int, help="Stop after this many donations")
@click.option("--end-date", help="Do not schedule cycles after this date")
@click.option("--currency", help="Currency code (defaults to PLEDGEFLOW_CURRENCY)")
@click.pass_context
def create_agreement(
    ctx,
    donor_id: str,
    amount: str,
    frequency: str,
    anchor: str,
    occurrence_limit: int | None,
    end_date: str | None,
    currency: str | None,
):
    """Create a recurring donation agreement.

    The first donation falls due one period after the anchor date.

    Examples:
        pledgeflow agreement create --donor D-100 --amount 500 --frequency monthly
        pledgeflow agreement create --donor D-100 --amount 500 --frequency monthly --anchor 2024-01-31 --limit 3
        pledgeflow agreement create --donor D-200 --amount 2500 --frequency yearly --end-date 2030-12-31
    """
    service = _service(ctx)

    with domain_errors(ctx):
        spec = AgreementSpec(
            donor_id=donor_id,
            amount=parse_amount(amount),
            frequency=Frequency(frequency.lower()),
            anchor_date=parse_date(anchor),
            occurrence_limit=occurrence_limit,
            end_date=parse_date(end_date) if end_date else None,
            currency=currency,
        )
        created = service.create(spec)

    click.echo(f"Created agreement {created.id} for donor '{created.donor_id}'")
    click.echo(f"  First donation due: {created.next_due_date}")


@agreement_group.command("list")
@click.option("--state", type=STATE_CHOICE, help="Only agreements in this state")
@click.option("--donor", "donor_id", help="Only agreements of this donor")
@click.pass_context
def list_agreements(ctx, state: str | None, donor_id: str | None):
    """List agreements."""
    service = _service(ctx)
    agreements = service.list_agreements(
        state=AgreementState(state.lower()) if state else None, donor_id=donor_id
    )
    if not agreements:
        click.echo("No agreements found.")
        return

    click.echo("\nAgreements:")
    click.echo("-" * 90)
    for agreement in agreements:
        echo_agreement_row(agreement)


@agreement_group.command("show")
@click.argument("agreement_id", type=int)
@click.pass_context
def show_agreement(ctx, agreement_id: int):
    """Show one agreement in detail."""
    with domain_errors(ctx):
        echo_agreement(_service(ctx).get(agreement_id))


@agreement_group.command("pause")
@click.argument("agreement_id", type=int)
@click.pass_context
def pause_agreement(ctx, agreement_id: int):
    """Pause an active agreement."""
    with domain_errors(ctx):
        updated = _service(ctx).pause(agreement_id)
    click.echo(f"Paused agreement {updated.id}")


@agreement_group.command("resume")
@click.argument("agreement_id", type=int)
@click.pass_context
def resume_agreement(ctx, agreement_id: int):
    """Resume a paused agreement.

    Cycles that fell due while paused are skipped unless
    PLEDGEFLOW_RESUME_POLICY is set to catch_up.
    """
    with domain_errors(ctx):
        updated = _service(ctx).resume(agreement_id)
    if updated.state == AgreementState.COMPLETED:
        click.echo(f"Agreement {updated.id} has no cycles left and is now completed")
        return
    click.echo(f"Resumed agreement {updated.id}; next donation due {updated.next_due_date}")


@agreement_group.command("cancel")
@click.argument("agreement_id", type=int)
@click.option("--reason", help="Why the agreement is cancelled")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def cancel_agreement(ctx, agreement_id: int, reason: str | None, yes: bool):
    """Cancel an agreement. This cannot be undone."""
    service = _service(ctx)
    with domain_errors(ctx):
        current = service.get(agreement_id)

    if not yes and not click.confirm(
        f"Are you sure you want to cancel agreement {current.id} "
        f"(donor '{current.donor_id}')?"
    ):
        click.echo("Cancellation aborted.")
        return

    with domain_errors(ctx):
        updated = service.cancel(agreement_id, reason=reason)
    click.echo(f"Cancelled agreement {updated.id}")


@agreement_group.command("modify")
@click.argument("agreement_id", type=int)
@click.option("--amount", help="New amount per cycle")
@click.option("--frequency", type=FREQUENCY_CHOICE, help="New cadence")
@click.option("--end-date", help="New end date")
@click.option("--limit", "occurrence_limit", type=int, help="New occurrence limit")
@click.pass_context
def modify_agreement(
    ctx,
    agreement_id: int,
    amount: str | None,
    frequency: str | None,
    end_date: str | None,
    occurrence_limit: int | None,
):
    """Change an active or paused agreement.

    Changing the frequency recomputes the next due date from the anchor date.

    Examples:
        pledgeflow agreement modify 3 --amount 750
        pledgeflow agreement modify 3 --frequency yearly
    """
    with domain_errors(ctx):
        patch = AgreementPatch(
            amount=parse_amount(amount) if amount else None,
            frequency=Frequency(frequency.lower()) if frequency else None,
            end_date=parse_date(end_date) if end_date else None,
            occurrence_limit=occurrence_limit,
        )
        updated = _service(ctx).modify(agreement_id, patch)

    click.echo(f"Updated agreement {updated.id}")
    echo_agreement(updated)


@agreement_group.command("reactivate")
@click.argument("agreement_id", type=int)
@click.pass_context
def reactivate_agreement(ctx, agreement_id: int):
    """Return a failed agreement to active and reset its retries."""
    with domain_errors(ctx):
        updated = _service(ctx).reactivate(agreement_id)
    click.echo(f"Reactivated agreement {updated.id}; next donation due {updated.next_due_date}")


@agreement_group.command("history")
@click.argument("agreement_id", type=int)
@click.pass_context
def agreement_history(ctx, agreement_id: int):
    """List the donations materialized for an agreement."""
    with domain_errors(ctx):
        instances = _service(ctx).history(agreement_id)
    if not instances:
        click.echo("No donations yet.")
        return
    for instance in instances:
        echo_instance_row(instance)


@agreement_group.command("schedule")
@click.argument("agreement_id", type=int)
@click.option("--count", default=12, show_default=True, type=int, help="Number of cycles")
@click.pass_context
def agreement_schedule(ctx, agreement_id: int, count: int):
    """Preview upcoming due dates of an agreement."""
    with domain_errors(ctx):
        dates = ReportingService(ctx.obj["db"]).schedule(agreement_id, count=count)
    if not dates:
        click.echo("No upcoming cycles.")
        return
    for number, due in enumerate(dates, start=1):
        click.echo(f"{number:3d}. {due}")


def register_commands(cli):
    """Register agreement commands with main CLI."""
    cli.add_command(agreement_group, name="agreement")
