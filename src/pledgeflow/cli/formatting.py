"""Text rendering shared by CLI commands."""

from decimal import Decimal

import click

from pledgeflow.domain.entities import DonationInstance, RecurringAgreement


def format_amount(amount: Decimal, currency: str = "") -> str:
    text = f"{amount:,.2f}"
    return f"{currency} {text}" if currency else text


def echo_agreement_row(agreement: RecurringAgreement) -> None:
    """One-line summary used by list views."""
    click.echo(
        f"ID: {agreement.id:4d} | {agreement.donor_id:16s} | "
        f"{format_amount(agreement.amount, agreement.currency):>14s} | "
        f"{agreement.frequency.value:9s} | {agreement.state.value:9s} | "
        f"Next: {agreement.next_due_date}"
    )


def echo_agreement(agreement: RecurringAgreement) -> None:
    """Detailed multi-line view of one agreement."""
    click.echo(f"Agreement {agreement.id}")
    click.echo(f"  Donor: {agreement.donor_id}")
    click.echo(f"  Amount: {format_amount(agreement.amount, agreement.currency)}")
    click.echo(f"  Frequency: {agreement.frequency.value}")
    click.echo(f"  State: {agreement.state.value}")
    click.echo(f"  Anchor date: {agreement.anchor_date}")
    click.echo(f"  Next due date: {agreement.next_due_date}")
    limit = agreement.occurrence_limit if agreement.occurrence_limit is not None else "none"
    click.echo(f"  Occurrences: {agreement.occurrences_completed} completed (limit: {limit})")
    if agreement.cycles_skipped:
        click.echo(f"  Cycles skipped: {agreement.cycles_skipped}")
    if agreement.end_date is not None:
        click.echo(f"  End date: {agreement.end_date}")
    if agreement.failure_streak:
        click.echo(f"  Failure streak: {agreement.failure_streak}")
    if agreement.next_retry_at is not None:
        click.echo(f"  Next retry at: {agreement.next_retry_at.isoformat()}")
    if agreement.cancel_reason:
        click.echo(f"  Cancel reason: {agreement.cancel_reason}")
    click.echo(f"  Version: {agreement.version}")


def echo_instance_row(instance: DonationInstance) -> None:
    ref = instance.transaction_ref or instance.failure_reason or ""
    click.echo(
        f"{instance.due_date} | {format_amount(instance.amount):>12s} | "
        f"{instance.status.value:8s} | attempts: {instance.attempts} | {ref}"
    )
