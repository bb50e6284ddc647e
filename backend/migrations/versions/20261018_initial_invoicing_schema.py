"""Initial invoicing schema: branches, workers, catalog, invoices, outbox, security events

Revision ID: 20261018_initial_invoicing
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial_invoicing"
down_revision = None
branch_labels = None
depends_on = None


def _line_table(name, parent_table, parent_column, with_description=False):
    columns = [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(parent_column, sa.String(32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("catalog_item_id", sa.String(32), nullable=False),
    ]
    if with_description:
        columns.append(sa.Column("item_description", sa.String(255), nullable=True))
    columns += [
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint([parent_column], [f"{parent_table}.id"]),
        sa.ForeignKeyConstraint(["catalog_item_id"], ["catalog_items.id"]),
        sa.PrimaryKeyConstraint("id"),
    ]
    op.create_table(name, *columns, sqlite_autoincrement=True)

    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_{parent_column}", [parent_column], unique=False)


def _totals_columns():
    return [
        sa.Column("tax_basis_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("grand_total_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
    ]


def upgrade():
    op.create_table(
        "branches",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("branch_name", sa.String(120), nullable=False),
        sa.Column("branch_phone_number", sa.String(32), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("branch_staff_id", sa.String(32), nullable=True),
        sa.Column("sales_receipt_invoice_ids", sa.JSON(), nullable=False),
        sa.Column("expense_invoice_ids", sa.JSON(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("branch_name"),
    )

    with op.batch_alter_table("branches", schema=None) as batch_op:
        batch_op.create_index("ix_branches_branch_staff_id", ["branch_staff_id"], unique=False)

    op.create_table(
        "workers",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("branch_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('Admin', 'Manager', 'Staff')", name="ck_workers_role"),
        sa.CheckConstraint("role = 'Admin' OR branch_id IS NOT NULL", name="ck_workers_branch_required"),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    with op.batch_alter_table("workers", schema=None) as batch_op:
        batch_op.create_index("ix_workers_email", ["email"], unique=True)
        batch_op.create_index("ix_workers_role", ["role"], unique=False)
        batch_op.create_index("ix_workers_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(120), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    with op.batch_alter_table("catalog_items", schema=None) as batch_op:
        batch_op.create_index("ix_catalog_items_type_active", ["item_type", "is_active"], unique=False)

    op.create_table(
        "sales_receipts",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("sr_number", sa.String(64), nullable=False),
        sa.Column("branch_id", sa.String(32), nullable=False),
        sa.Column("created_by_worker_id", sa.String(32), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone_number", sa.String(32), nullable=True),
        sa.Column("mobile_number", sa.String(32), nullable=True),
        sa.Column("customer_address", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("message_to_customer", sa.Text(), nullable=True),
        sa.Column("message_to_statement", sa.Text(), nullable=True),
        *_totals_columns(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["created_by_worker_id"], ["workers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sr_number"),
    )

    with op.batch_alter_table("sales_receipts", schema=None) as batch_op:
        batch_op.create_index("ix_sales_receipts_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_sales_receipts_created_by_worker_id", ["created_by_worker_id"], unique=False)
        batch_op.create_index("ix_sales_receipts_branch_created", ["branch_id", "created_at"], unique=False)

    _line_table("sales_receipt_lines", "sales_receipts", "sales_receipt_id")

    op.create_table(
        "expense_invoices",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("ref_number", sa.String(64), nullable=False),
        sa.Column("branch_id", sa.String(32), nullable=False),
        sa.Column("created_by_worker_id", sa.String(32), nullable=False),
        sa.Column("payer_name", sa.String(200), nullable=True),
        sa.Column("payer_email", sa.String(255), nullable=True),
        sa.Column("recipient_name", sa.String(200), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("type_of_expense", sa.String(120), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("message_on_statement", sa.Text(), nullable=True),
        *_totals_columns(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["created_by_worker_id"], ["workers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ref_number"),
    )

    with op.batch_alter_table("expense_invoices", schema=None) as batch_op:
        batch_op.create_index("ix_expense_invoices_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_expense_invoices_created_by_worker_id", ["created_by_worker_id"], unique=False)
        batch_op.create_index("ix_expense_invoices_branch_created", ["branch_id", "created_at"], unique=False)

    _line_table("expense_invoice_lines", "expense_invoices", "expense_invoice_id", with_description=True)

    op.create_table(
        "notification_outbox",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_kind", sa.String(32), nullable=False),
        sa.Column("invoice_id", sa.String(32), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_error", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("notification_outbox", schema=None) as batch_op:
        batch_op.create_index("ix_notification_outbox_invoice_id", ["invoice_id"], unique=False)
        batch_op.create_index("ix_notification_outbox_status", ["status"], unique=False)
        batch_op.create_index("ix_notification_outbox_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("worker_id", sa.String(32), nullable=True),
        sa.Column("branch_id", sa.String(32), nullable=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=True),
        sa.Column("resource", sa.String(128), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("security_events", schema=None) as batch_op:
        batch_op.create_index("ix_security_events_worker_id", ["worker_id"], unique=False)
        batch_op.create_index("ix_security_events_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_security_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_security_events_success", ["success"], unique=False)
        batch_op.create_index("ix_security_events_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_security_events_worker_type", ["worker_id", "event_type"], unique=False)
        batch_op.create_index("ix_security_events_occurred", ["occurred_at"], unique=False)


def downgrade():
    op.drop_table("security_events")
    op.drop_table("notification_outbox")
    op.drop_table("expense_invoice_lines")
    op.drop_table("expense_invoices")
    op.drop_table("sales_receipt_lines")
    op.drop_table("sales_receipts")
    op.drop_table("catalog_items")
    op.drop_table("workers")
    op.drop_table("branches")
