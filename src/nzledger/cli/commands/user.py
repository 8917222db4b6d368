"""User commands."""

import click
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.errors import DomainError
from nzledger.domain.organization import USER_ROLES, OrganizationService


@click.group()
def user_group():
    """Manage users."""
    pass


@user_group.command("create")
@click.argument("organization_id", type=int)
@click.argument("email")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--role", type=click.Choice(USER_ROLES), default="user", show_default=True)
@click.option("--high-value", is_flag=True, help="Authorize the user for high value transactions")
@click.pass_context
def create_user(
    ctx,
    organization_id: int,
    email: str,
    first_name: str,
    last_name: str,
    role: str,
    high_value: bool,
):
    """Create a user in an organization.

    Admins and compliance officers may approve high value transactions
    without --high-value.

    Examples:
        nzledger user create 1 aroha@kiwi.co.nz --first-name Aroha --last-name Ngata
        nzledger user create 1 cfo@kiwi.co.nz --first-name Sam --last-name Lee --role manager --high-value
    """
    service = OrganizationService(ctx.obj["db"])

    try:
        user_id = service.create_user(
            organization_id=organization_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            authorized_for_high_value=high_value,
        )
        click.echo(f"Created user '{email}' (ID: {user_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@user_group.command("show")
@click.argument("user_id", type=int)
@click.pass_context
def show_user(ctx, user_id: int):
    """Show a user and their approval rights."""
    service = OrganizationService(ctx.obj["db"])

    try:
        user = service.get_user(user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{user.full_name} <{user.email}>")
    click.echo(f"Organization: {user.organization_id}")
    click.echo(f"Role:         {user.role.value}")
    click.echo(f"High value:   {'authorized' if user.can_authorize_high_value else 'not authorized'}")


def register_commands(cli):
    """Register user commands with main CLI."""
    cli.add_command(user_group, name="user")
