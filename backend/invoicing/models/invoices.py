from __future__ import annotations

from ..extensions import db
from ..identifiers import new_id
from invoicing.time_utils import to_utc_z, utcnow


INVOICE_KIND_SALES_RECEIPT = "sales_receipt"
INVOICE_KIND_EXPENSE = "expense"


def _tax_percent(tax_basis_points: int | None) -> float:
    return (tax_basis_points or 0) / 100


def _iso_date(value) -> str | None:
    return value.isoformat() if value else None


class SalesReceipt(db.Model):
    """
    Sales receipt invoice issued by a branch to a customer.

    Monetary columns are always computed by pricing_service from the lines
    and tax; they are never written from request input.
    """
    __tablename__ = "sales_receipts"
    __table_args__ = (
        db.Index("ix_sales_receipts_branch_created", "branch_id", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    # Human reference number, unique across all sales receipts
    sr_number = db.Column(db.String(64), nullable=False, unique=True)

    branch_id = db.Column(db.String(32), db.ForeignKey("branches.id"), nullable=False, index=True)
    created_by_worker_id = db.Column(db.String(32), db.ForeignKey("workers.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(200), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone_number = db.Column(db.String(32), nullable=True)
    mobile_number = db.Column(db.String(32), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    note = db.Column(db.Text, nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    invoice_date = db.Column(db.Date, nullable=True)
    message_to_customer = db.Column(db.Text, nullable=True)
    message_to_statement = db.Column(db.Text, nullable=True)

    # Totals (all amounts in cents, tax in basis points: 1% = 100)
    tax_basis_points = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch")
    created_by = db.relationship("Worker")
    lines = db.relationship(
        "SalesReceiptLine",
        backref="sales_receipt",
        cascade="all, delete-orphan",
        order_by="SalesReceiptLine.position",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def reference_number(self) -> str:
        return self.sr_number

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sr_number": self.sr_number,
            "branch_id": self.branch_id,
            "created_by_worker_id": self.created_by_worker_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone_number": self.customer_phone_number,
            "mobile_number": self.mobile_number,
            "customer_address": self.customer_address,
            "description": self.description,
            "note": self.note,
            "payment_method": self.payment_method,
            "invoice_date": _iso_date(self.invoice_date),
            "message_to_customer": self.message_to_customer,
            "message_to_statement": self.message_to_statement,
            "tax_percent": _tax_percent(self.tax_basis_points),
            "tax_basis_points": self.tax_basis_points,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "grand_total_cents": self.grand_total_cents,
            "products": [line.to_dict() for line in self.lines],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

    def to_hydrated_dict(self) -> dict:
        """Invoice joined with its branch and creator summaries."""
        data = self.to_dict()
        data["branch"] = self.branch.summary_dict() if self.branch else None
        data["created_by"] = self.created_by.summary_dict() if self.created_by else None
        return data


class SalesReceiptLine(db.Model):
    """Priced product line on a sales receipt."""
    __tablename__ = "sales_receipt_lines"

    id = db.Column(db.Integer, primary_key=True)
    sales_receipt_id = db.Column(db.String(32), db.ForeignKey("sales_receipts.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    catalog_item_id = db.Column(db.String(32), db.ForeignKey("catalog_items.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    catalog_item = db.relationship("CatalogItem")

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "product_id": self.catalog_item_id,
            "product_name": self.catalog_item.name if self.catalog_item else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
        }


class ExpenseInvoice(db.Model):
    """Expense invoice recording money a branch paid out."""
    __tablename__ = "expense_invoices"
    __table_args__ = (
        db.Index("ix_expense_invoices_branch_created", "branch_id", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    # Human reference number, unique across all expense invoices
    ref_number = db.Column(db.String(64), nullable=False, unique=True)

    branch_id = db.Column(db.String(32), db.ForeignKey("branches.id"), nullable=False, index=True)
    created_by_worker_id = db.Column(db.String(32), db.ForeignKey("workers.id"), nullable=False, index=True)

    payer_name = db.Column(db.String(200), nullable=True)
    payer_email = db.Column(db.String(255), nullable=True)
    recipient_name = db.Column(db.String(200), nullable=False)
    recipient_email = db.Column(db.String(255), nullable=False)
    type_of_expense = db.Column(db.String(120), nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)
    description = db.Column(db.Text, nullable=True)
    message_on_statement = db.Column(db.Text, nullable=True)

    tax_basis_points = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    branch = db.relationship("Branch")
    created_by = db.relationship("Worker")
    lines = db.relationship(
        "ExpenseInvoiceLine",
        backref="expense_invoice",
        cascade="all, delete-orphan",
        order_by="ExpenseInvoiceLine.position",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def reference_number(self) -> str:
        return self.ref_number

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ref_number": self.ref_number,
            "branch_id": self.branch_id,
            "created_by_worker_id": self.created_by_worker_id,
            "payer_name": self.payer_name,
            "payer_email": self.payer_email,
            "recipient_name": self.recipient_name,
            "recipient_email": self.recipient_email,
            "type_of_expense": self.type_of_expense,
            "payment_method": self.payment_method,
            "description": self.description,
            "message_on_statement": self.message_on_statement,
            "tax_percent": _tax_percent(self.tax_basis_points),
            "tax_basis_points": self.tax_basis_points,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "grand_total_cents": self.grand_total_cents,
            "expense_items": [line.to_dict() for line in self.lines],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

    def to_hydrated_dict(self) -> dict:
        data = self.to_dict()
        data["branch"] = self.branch.summary_dict() if self.branch else None
        data["created_by"] = self.created_by.summary_dict() if self.created_by else None
        return data


class ExpenseInvoiceLine(db.Model):
    """Priced expense line; item_description is free text from the request."""
    __tablename__ = "expense_invoice_lines"

    id = db.Column(db.Integer, primary_key=True)
    expense_invoice_id = db.Column(db.String(32), db.ForeignKey("expense_invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    catalog_item_id = db.Column(db.String(32), db.ForeignKey("catalog_items.id"), nullable=False)
    item_description = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    catalog_item = db.relationship("CatalogItem")

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "item_id": self.catalog_item_id,
            "item_name": self.catalog_item.name if self.catalog_item else None,
            "item_description": self.item_description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
        }
