"""CLI error handling helpers."""

import click

from nzledger.domain.errors import DomainError, ValidationError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    Validation errors are printed one line per field error.
    """
    if isinstance(error, ValidationError) and error.field_errors:
        for field_error in error.field_errors:
            click.echo(f"Error: {field_error}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
