# Overview: Flask CLI command groups for bootstrap and invoice list maintenance.

# backend/invoicing/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system seed --admin-email admin@invoicing.local
#   Create a first branch and an Admin worker, and print their ids.
#
# Branches:
# - python -m flask branches list
#   List branches with their invoice list sizes.
# - python -m flask branches reconcile [--branch-id <id>]
#   Rebuild branch invoice id lists from the invoice tables.
#
# Workers:
# - python -m flask workers create --full-name "Ada" --email ada@shop.local --role Manager --branch-id <id>
#   Onboard a worker.
#
# Catalog:
# - python -m flask catalog add --name "Widget" --price-cents 1299 [--type expense]
#   Add a product or expense catalog item.
#
# Notifications:
# - python -m flask notifications dispatch [--limit 100]
#   Deliver PENDING invoice notices (deferred dispatch mode).
# - python -m flask notifications retry [--max-attempts 3] [--limit 100]
#   Re-deliver FAILED invoice notices that still have attempts left.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import InvoicingError
from .models import Branch
from .models.catalog import ITEM_TYPE_PRODUCT, VALID_ITEM_TYPES
from .models.workers import ROLE_ADMIN, VALID_ROLES
from .services import branch_service, catalog_service, notification_service, worker_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@click.option('--branch-name', default='Main Branch', help='Name of the first branch')
@click.option('--admin-name', default='Administrator', help='Full name of the Admin worker')
@click.option('--admin-email', default='admin@invoicing.local', help='Email of the Admin worker')
@with_appcontext
def seed(branch_name, admin_name, admin_email):
    """Create a first branch and Admin worker unless they already exist."""
    branch = db.session.query(Branch).filter_by(branch_name=branch_name).first()
    if branch:
        click.echo(f"PASS Using existing branch: {branch.branch_name} (ID: {branch.id})")
    else:
        branch = branch_service.create_branch(branch_name)
        click.echo(f"PASS Created branch: {branch.branch_name} (ID: {branch.id})")

    try:
        admin = worker_service.create_worker(
            full_name=admin_name,
            email=admin_email,
            role=ROLE_ADMIN,
            branch_id=branch.id,
        )
    except InvoicingError as e:
        click.echo(f"WARN  Admin not created: {e.message}")
        return

    branch_service.set_branch_staff(branch.id, admin.id)
    click.echo(f"PASS Created Admin worker: {admin.email} (ID: {admin.id})")
    click.echo("\nSend the Admin id as the X-Worker-Id header.")


@click.group('branches')
def branches_group():
    """Branch inspection and invoice list repair."""


@branches_group.command('list')
@with_appcontext
def list_branches():
    branches = branch_service.list_branches()
    if not branches:
        click.echo("No branches found")
        return
    for branch in branches:
        click.echo(
            f"{branch.id}  {branch.branch_name:<30} "
            f"sales_receipts={len(branch.sales_receipt_invoice_ids or [])} "
            f"expenses={len(branch.expense_invoice_ids or [])}"
        )


@branches_group.command('reconcile')
@click.option('--branch-id', default=None, help='Only reconcile this branch')
@with_appcontext
def reconcile(branch_id):
    """
    Rebuild branch invoice id lists from the invoice tables.

    Appends invoices missing from a list and drops ids whose invoice no
    longer exists. Safe to run repeatedly.
    """
    try:
        if branch_id:
            reports = [branch_service.reconcile_branch(branch_id)]
        else:
            reports = branch_service.reconcile_all_branches()
    except InvoicingError as e:
        raise click.ClickException(e.message)

    changed = 0
    for report in reports:
        if not report.changed:
            continue
        changed += 1
        for kind in branch_service.BRANCH_COLLECTIONS:
            added = report.added.get(kind) or []
            removed = report.removed.get(kind) or []
            if added or removed:
                click.echo(f"{report.branch_id} {kind}: +{len(added)} -{len(removed)}")

    click.echo(f"PASS Reconciled {len(reports)} branch(es), {changed} changed")


@click.group('workers')
def workers_group():
    """Worker onboarding."""


@workers_group.command('create')
@click.option('--full-name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True)
@click.option('--branch-id', default=None)
@click.option('--phone-number', default=None)
@with_appcontext
def create_worker(full_name, email, role, branch_id, phone_number):
    try:
        worker = worker_service.create_worker(
            full_name=full_name,
            email=email,
            role=role,
            branch_id=branch_id,
            phone_number=phone_number,
        )
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created worker: {worker.email} ({worker.role}) ID: {worker.id}")


@click.group('catalog')
def catalog_group():
    """Product and expense item catalog."""


@catalog_group.command('add')
@click.option('--name', required=True)
@click.option('--price-cents', type=int, required=True)
@click.option('--type', 'item_type', type=click.Choice(sorted(VALID_ITEM_TYPES)), default=ITEM_TYPE_PRODUCT)
@click.option('--category', default=None)
@with_appcontext
def add_item(name, price_cents, item_type, category):
    try:
        item = catalog_service.create_item(
            name=name,
            price_cents=price_cents,
            item_type=item_type,
            category=category,
        )
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Added {item.item_type} item: {item.name} ({item.price_cents} cents) ID: {item.id}")


@click.group('notifications')
def notifications_group():
    """Invoice notice outbox delivery."""


@notifications_group.command('dispatch')
@click.option('--limit', type=int, default=100)
@with_appcontext
def dispatch(limit):
    counts = notification_service.dispatch_pending(limit=limit)
    click.echo(f"PASS Dispatched: sent={counts['SENT']} failed={counts['FAILED']}")


@notifications_group.command('retry')
@click.option('--max-attempts', type=int, default=None, help='Defaults to NOTIFICATION_MAX_ATTEMPTS')
@click.option('--limit', type=int, default=100)
@with_appcontext
def retry(max_attempts, limit):
    counts = notification_service.retry_failed(max_attempts=max_attempts, limit=limit)
    click.echo(f"PASS Retried: sent={counts['SENT']} failed={counts['FAILED']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(workers_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(notifications_group)
