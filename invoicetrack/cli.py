"""
InvoiceTrack CLI commands

This module provides a command-line interface over the invoice workflow.
The acting user is chosen with --as; the CLI is a trusted local caller.
"""

import json
from pathlib import Path

import click

from invoicetrack.config import InvoiceTrackConfig, configure_logging
from invoicetrack.core import InvoiceTrack
from invoicetrack.exceptions import InvoiceTrackError


def _app(ctx) -> InvoiceTrack:
    if 'app' not in ctx.obj:
        ctx.obj['app'] = InvoiceTrack(ctx.obj['config'])
        ctx.call_on_close(ctx.obj['app'].close)
    return ctx.obj['app']


def _actor(ctx, user_id):
    return _app(ctx).users.actor_for(user_id)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


def _echo_invoice(invoice):
    click.echo(f"   ID: {invoice.id}")
    click.echo(f"   Vendor: {invoice.vendor_name}")
    click.echo(f"   Amount: {invoice.amount}")
    click.echo(f"   Due: {invoice.due_date}")
    click.echo(f"   Category: {invoice.category}")
    click.echo(f"   Status: {invoice.status.value}")
    click.echo(f"   Submitted by: {invoice.submitted_by}")
    click.echo(f"   Assigned to: {invoice.assigned_to or '-'}")
    if invoice.file_name:
        click.echo(f"   Attachment: {invoice.file_name} ({invoice.file_url})")


def _fail(e):
    click.echo(f"❌ Error: {str(e)}", err=True)
    raise click.Abort()


def _attachment(file_name, file_url, file_size, content_type):
    if not file_name and not file_url:
        return None
    return {
        'file_name': file_name or '',
        'file_url': file_url or '',
        'size_bytes': file_size,
        'content_type': content_type,
    }


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True), help='Path to configuration file')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']), help='Logging level')
@click.pass_context
def cli(ctx, config_path, log_level):
    """InvoiceTrack command-line interface"""
    ctx.ensure_object(dict)
    config = InvoiceTrackConfig.from_file(config_path) if config_path else InvoiceTrackConfig()
    if log_level:
        config.set('logging.level', log_level)
    configure_logging(config)
    ctx.obj['config'] = config


@cli.command()
@click.option('--db-type', type=click.Choice(['sqlite', 'postgresql']), help='Database type')
@click.option('--db-path', type=click.Path(), help='SQLite database path')
@click.option('--db-host', help='PostgreSQL host')
@click.option('--db-port', type=int, help='PostgreSQL port')
@click.option('--db-name', help='PostgreSQL database name')
@click.option('--db-user', help='PostgreSQL user')
@click.option('--db-password', help='PostgreSQL password')
@click.option('--save-to', type=click.Path(), help='Where to save the configuration (default ~/.invoicetrack/config.yaml)')
@click.pass_context
def init(ctx, db_type, db_path, db_host, db_port, db_name, db_user, db_password, save_to):
    """Initialize the database and save the configuration"""
    config = ctx.obj['config']
    if db_type:
        config.set('database.type', db_type)
    if db_path:
        config.set('database.sqlite.path', db_path)
    if db_host:
        config.set('database.postgres.host', db_host)
    if db_port:
        config.set('database.postgres.port', db_port)
    if db_name:
        config.set('database.postgres.database', db_name)
    if db_user:
        config.set('database.postgres.user', db_user)
    if db_password:
        config.set('database.postgres.password', db_password)
    if not config.validate():
        _fail('Configuration is invalid')

    try:
        _app(ctx)
    except RuntimeError as e:
        _fail(e)
    saved = config.save(Path(save_to) if save_to else None)
    click.echo("✅ InvoiceTrack initialized successfully!")
    click.echo(f"   Configuration: {saved}")


@cli.group()
def user():
    """Manage users"""
    pass


@user.command('add')
@click.option('--name', required=True, help='Display name')
@click.option('--email', required=True, help='Email address')
@click.option('--role', type=click.Choice(['user', 'admin']), default='user', help='Role')
@click.pass_context
def add_user(ctx, name, email, role):
    """Register a user"""
    try:
        record = _app(ctx).users.register(name, email, role)
    except InvoiceTrackError as e:
        _fail(e)
    click.echo("✅ User registered successfully!")
    click.echo(f"   ID: {record.id}")
    click.echo(f"   Role: {record.role.value}")


@user.command('list')
@click.option('--role', type=click.Choice(['user', 'admin']), help='Only users with this role')
@click.option('--format', type=click.Choice(['table', 'json']), default='table', help='Output format')
@click.pass_context
def list_users(ctx, role, format):
    """List users"""
    users = _app(ctx).users.list(role)
    if format == 'json':
        _echo_json([u.model_dump(mode='json') for u in users])
        return
    if not users:
        click.echo("No users found.")
        return
    click.echo(f"{'ID':<40} {'Role':<8} {'Email':<30}")
    click.echo("-" * 80)
    for u in users:
        click.echo(f"{u.id:<40} {u.role.value:<8} {u.email:<30}")


@cli.group()
def invoice():
    """Manage invoices"""
    pass


@invoice.command('create')
@click.option('--as', 'actor_id', required=True, help='Submitting user ID')
@click.option('--vendor', required=True, help='Vendor name')
@click.option('--amount', required=True, help='Invoice amount')
@click.option('--due-date', required=True, help='Due date (YYYY-MM-DD)')
@click.option('--category', required=True, help='Category')
@click.option('--notes', help='Free-form notes')
@click.option('--assign-to', help='Reviewer user ID')
@click.option('--file-name', help='Attachment file name')
@click.option('--file-url', help='Attachment URL')
@click.option('--file-size', type=int, help='Attachment size in bytes')
@click.option('--content-type', help='Attachment MIME type')
@click.pass_context
def create_invoice(ctx, actor_id, vendor, amount, due_date, category, notes, assign_to,
                   file_name, file_url, file_size, content_type):
    """Submit a new invoice"""
    fields = {
        'vendor_name': vendor,
        'amount': amount,
        'due_date': due_date,
        'category': category,
        'notes': notes,
        'attachment': _attachment(file_name, file_url, file_size, content_type),
    }
    try:
        record = _app(ctx).engine.create_invoice(_actor(ctx, actor_id), fields, assigned_to=assign_to)
    except InvoiceTrackError as e:
        _fail(e)
    click.echo("✅ Invoice created successfully!")
    _echo_invoice(record)


@invoice.command('show')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.argument('invoice_id')
@click.option('--format', type=click.Choice(['text', 'json']), default='text', help='Output format')
@click.pass_context
def show_invoice(ctx, actor_id, invoice_id, format):
    """Show one invoice"""
    try:
        record = _app(ctx).engine.get_invoice(_actor(ctx, actor_id), invoice_id)
    except InvoiceTrackError as e:
        _fail(e)
    if format == 'json':
        _echo_json(record.model_dump(mode='json'))
    else:
        _echo_invoice(record)


@invoice.command('list')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.option('--status', type=click.Choice(['pending', 'approved', 'rejected', 'paid']), help='Filter by status')
@click.option('--vendor', help='Vendor name contains')
@click.option('--category', help='Filter by category')
@click.option('--start-date', type=click.DateTime(formats=['%Y-%m-%d']), help='Earliest due date')
@click.option('--end-date', type=click.DateTime(formats=['%Y-%m-%d']), help='Latest due date')
@click.option('--assigned-to', help='Filter by reviewer user ID')
@click.option('--page', type=int, default=1, help='Page number')
@click.option('--limit', 'page_size', type=int, help='Invoices per page')
@click.option('--format', type=click.Choice(['table', 'json']), default='table', help='Output format')
@click.pass_context
def list_invoices(ctx, actor_id, status, vendor, category, start_date, end_date, assigned_to, page, page_size, format):
    """List invoices visible to the acting user, newest first"""
    try:
        result = _app(ctx).invoices.list_invoices(
            _actor(ctx, actor_id),
            status=status,
            vendor=vendor,
            category=category,
            start_date=start_date.date() if start_date else None,
            end_date=end_date.date() if end_date else None,
            assigned_to=assigned_to,
            page=page,
            page_size=page_size,
        )
    except InvoiceTrackError as e:
        _fail(e)
    if format == 'json':
        _echo_json(result.model_dump(mode='json'))
        return
    click.echo(f"\nPage {result.page}/{max(result.total_pages, 1)} ({result.total_count} invoice(s)):\n")
    click.echo(f"{'ID':<40} {'Status':<10} {'Amount':>12} {'Vendor':<30}")
    click.echo("-" * 96)
    for inv in result.items:
        click.echo(f"{inv.id:<40} {inv.status.value:<10} {str(inv.amount):>12} {inv.vendor_name:<30}")


@invoice.command('edit')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.argument('invoice_id')
@click.option('--vendor', help='Vendor name')
@click.option('--amount', help='Invoice amount')
@click.option('--due-date', help='Due date (YYYY-MM-DD)')
@click.option('--category', help='Category')
@click.option('--notes', help='Free-form notes')
@click.option('--file-name', help='Attachment file name')
@click.option('--file-url', help='Attachment URL')
@click.option('--file-size', type=int, help='Attachment size in bytes')
@click.option('--content-type', help='Attachment MIME type')
@click.pass_context
def edit_invoice(ctx, actor_id, invoice_id, vendor, amount, due_date, category, notes,
                 file_name, file_url, file_size, content_type):
    """Edit the descriptive fields of a pending invoice"""
    fields = {
        key: value for key, value in {
            'vendor_name': vendor,
            'amount': amount,
            'due_date': due_date,
            'category': category,
            'notes': notes,
            'attachment': _attachment(file_name, file_url, file_size, content_type),
        }.items() if value is not None
    }
    try:
        record = _app(ctx).engine.update_descriptive_fields(_actor(ctx, actor_id), invoice_id, fields)
    except InvoiceTrackError as e:
        _fail(e)
    click.echo("✅ Invoice updated successfully!")
    _echo_invoice(record)


@invoice.command('status')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.argument('invoice_id')
@click.argument('status')
@click.option('--reason', help='Reason for the change')
@click.pass_context
def change_status(ctx, actor_id, invoice_id, status, reason):
    """Move an invoice to approved, rejected or paid"""
    try:
        record = _app(ctx).engine.request_transition(_actor(ctx, actor_id), invoice_id, status, reason)
    except InvoiceTrackError as e:
        _fail(e)
    click.echo(f"✅ Invoice {record.id} is now {record.status.value}")


@invoice.command('assign')
@click.option('--as', 'actor_id', required=True, help='Acting admin user ID')
@click.argument('invoice_id')
@click.argument('reviewer_id')
@click.option('--message', help='Message for the reviewer')
@click.pass_context
def assign_invoice(ctx, actor_id, invoice_id, reviewer_id, message):
    """Assign or reassign the reviewer of an invoice"""
    try:
        record = _app(ctx).engine.assign(_actor(ctx, actor_id), invoice_id, reviewer_id, message)
    except InvoiceTrackError as e:
        _fail(e)
    click.echo(f"✅ Invoice {record.id} assigned to {record.assigned_to}")


@invoice.command('history')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.argument('invoice_id')
@click.option('--format', type=click.Choice(['table', 'json']), default='table', help='Output format')
@click.pass_context
def invoice_history(ctx, actor_id, invoice_id, format):
    """Show the action log of an invoice, newest first"""
    try:
        entries = _app(ctx).engine.list_invoice_actions(_actor(ctx, actor_id), invoice_id)
    except InvoiceTrackError as e:
        _fail(e)
    if format == 'json':
        _echo_json([e.model_dump(mode='json') for e in entries])
        return
    for entry in entries:
        change = f"{entry.previous_status.value if entry.previous_status else '-'} -> {entry.new_status.value if entry.new_status else '-'}"
        click.echo(f"{entry.sequence:>3} {entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.action.value:<11} {change:<22} by {entry.performed_by}")


@cli.command('actions')
@click.option('--as', 'actor_id', required=True, help='Acting user ID')
@click.option('--user', 'subject_id', help='Whose actions to list (admin only for other users)')
@click.option('--page', type=int, default=1, help='Page number')
@click.option('--limit', 'page_size', type=int, help='Entries per page')
@click.pass_context
def list_actions(ctx, actor_id, subject_id, page, page_size):
    """List actions performed by a user, newest first"""
    try:
        result = _app(ctx).engine.list_actor_actions(_actor(ctx, actor_id), page, page_size, actor_id=subject_id)
    except InvoiceTrackError as e:
        _fail(e)
    _echo_json(result.model_dump(mode='json'))


if __name__ == '__main__':
    cli()
