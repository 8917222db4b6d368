"""Transaction category commands."""

import click
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.errors import DomainError
from nzledger.domain.organization import CATEGORY_TYPES, GST_TREATMENTS, OrganizationService


@click.group()
def category_group():
    """Manage transaction categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.option("--type", "category_type", type=click.Choice(CATEGORY_TYPES), help="Category type")
@click.option(
    "--gst-treatment",
    type=click.Choice(GST_TREATMENTS),
    default="standard",
    show_default=True,
    help="GST treatment applied to payments in this category",
)
@click.pass_context
def create_category(ctx, name: str, category_type: str | None, gst_treatment: str):
    """Create a transaction category.

    Examples:
        nzledger category create "Sales" --type income
        nzledger category create "Exports" --type income --gst-treatment zero_rated
    """
    service = OrganizationService(ctx.obj["db"])

    try:
        category_id = service.create_category(name=name, category_type=category_type, gst_treatment=gst_treatment)
        click.echo(f"Created category '{name}' (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
