"""Audit trail commands."""

import json

import click
from nzledger.cli.error_handling import handle_domain_error
from nzledger.domain.audit import AuditTrailRecorder
from nzledger.domain.entities import AuditableRef, EntityKind
from nzledger.domain.errors import DomainError

ENTITY_KINDS = tuple(k.value for k in EntityKind)


def _recorder(ctx) -> AuditTrailRecorder:
    return AuditTrailRecorder(ctx.obj["db"], ctx.obj["config"], clock=ctx.obj["clock"])


@click.group()
def audit_group():
    """Inspect and maintain the audit trail."""
    pass


@audit_group.command("list")
@click.argument("entity_kind", type=click.Choice(ENTITY_KINDS))
@click.argument("entity_id", type=int)
@click.option("--action", help="Only entries with this action")
@click.pass_context
def list_entries(ctx, entity_kind: str, entity_id: int, action: str | None):
    """List audit entries for an entity, oldest first.

    Examples:
        nzledger audit list financial_transaction 12
        nzledger audit list organization 1 --action gst_return_submitted
    """
    recorder = _recorder(ctx)
    entries = recorder.entries_for(AuditableRef(EntityKind(entity_kind), entity_id), action=action)
    if not entries:
        click.echo("No audit entries found.")
        return
    for entry in entries:
        summary = recorder.summary(entry)
        click.echo(
            f"{summary['id']:4d} | {summary['timestamp']} | {summary['action']:32s} | "
            f"{summary['user']} | {summary['ip_address']}"
        )


@audit_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show an audit entry with its recorded changes."""
    recorder = _recorder(ctx)

    try:
        entry = recorder.get_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    summary = recorder.summary(entry)
    summary["retention_years_remaining"] = recorder.retention_period_remaining(entry)
    summary["changes"] = recorder.parsed_changes(entry)
    click.echo(json.dumps(summary, indent=2, default=str))


@audit_group.command("expired")
@click.pass_context
def list_expired(ctx):
    """List entries whose retention period has ended."""
    recorder = _recorder(ctx)
    entries = recorder.expired()
    if not entries:
        click.echo("No expired audit entries.")
        return
    for entry in entries:
        click.echo(f"{entry.id:4d} | {entry.auditable} | {entry.action} | expired {entry.expires_at.isoformat()}")


@audit_group.command("purge")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def purge_expired(ctx, yes: bool):
    """Delete entries whose retention period has ended."""
    recorder = _recorder(ctx)
    count = len(recorder.expired())
    if count == 0:
        click.echo("No expired audit entries.")
        return
    if not yes:
        click.confirm(f"Delete {count} expired audit entries?", abort=True)
    deleted = recorder.purge_expired()
    click.echo(f"Deleted {deleted} expired audit entries")


def register_commands(cli):
    """Register audit commands with main CLI."""
    cli.add_command(audit_group, name="audit")
