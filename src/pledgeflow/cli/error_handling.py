"""CLI error handling helpers."""

from contextlib import contextmanager
from typing import Iterator

import click

from pledgeflow.domain.errors import ConcurrentModification, DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ConcurrentModification):
        click.echo("The agreement changed while processing; please retry.", err=True)
    ctx.exit(1)


@contextmanager
def domain_errors(ctx: click.Context) -> Iterator[None]:
    """Turn domain errors raised inside the block into an error exit."""
    try:
        yield
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
