# Overview: Invoice lifecycle (create, update, read, list, delete) for both invoice kinds.

"""
Invoice lifecycle manager.

WHY: Sales receipts and expense invoices follow the same authorization,
pricing and branch-linking rules. One code path serves both through an
InvoiceKind descriptor instead of near-duplicate handlers.

LIFECYCLE: NonExistent -> Active -> Deleted (row removed). There is no draft
or void state.

ORDER OF CHECKS (create):
1. Identifier syntax, header fields, items and tax shape (no store access)
2. Resolve actor, authorize for the target branch, resolve branch
3. Reference number uniqueness (Conflict)
4. Price lines from the catalog
5. Commit invoice + lines (the authoritative write)
6. Link invoice id into the branch list (separate commit, failure = degraded)
7. Notify (outbox, failure = degraded)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from ..models import (
    Branch,
    ExpenseInvoice,
    ExpenseInvoiceLine,
    SalesReceipt,
    SalesReceiptLine,
    Worker,
)
from ..models.catalog import ITEM_TYPE_EXPENSE, ITEM_TYPE_PRODUCT
from ..models.invoices import INVOICE_KIND_EXPENSE, INVOICE_KIND_SALES_RECEIPT
from ..policy import PolicyAction
from ..validation import ModelValidationPolicy, validate_payload
from . import branch_service, notification_service
from .identity_service import require_identifier, resolve_actor, resolve_branch
from .permission_service import require_authorized, require_role_permits
from .pricing_service import (
    PricedInvoiceTotals,
    compute_totals,
    parse_tax_percent,
    price_line_items,
    validate_line_items,
)


# Totals are derived, never written from input; accepted and dropped
COMPUTED_FIELDS = {
    "subtotal", "subtotal_cents", "tax_cents", "total_tax",
    "grand_total", "grand_total_cents", "grandTotal", "totalPrice",
}


@dataclass(frozen=True)
class InvoiceKind:
    code: str
    slug: str
    label: str
    model: type
    line_model: type
    reference_field: str
    item_type: str
    item_key: str
    items_field: str
    recipient_field: str
    header_policy: ModelValidationPolicy
    build_notice: Callable


@dataclass
class InvoiceResult:
    invoice: object
    branch_linked: bool = True
    notification_status: str | None = None

    def to_dict(self) -> dict:
        return {
            "invoice": self.invoice.to_hydrated_dict(),
            "branch_linked": self.branch_linked,
            "notification_status": self.notification_status,
        }


@dataclass
class DeleteResult:
    invoice_id: str
    branch_id: str
    branch_unlinked: bool

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "branch_id": self.branch_id,
            "branch_unlinked": self.branch_unlinked,
        }


def _notice_totals(priced: PricedInvoiceTotals) -> dict:
    return {
        "lines": [line.to_dict() for line in priced.lines],
        "subtotal_cents": priced.subtotal_cents,
        "tax_percent": priced.tax_basis_points / 100,
        "tax_cents": priced.tax_cents,
        "grand_total_cents": priced.grand_total_cents,
    }


def _sales_receipt_notice(invoice: SalesReceipt, branch: Branch, actor: Worker, priced: PricedInvoiceTotals) -> dict:
    return {
        "subject": f"Sales receipt {invoice.sr_number} from {branch.branch_name}",
        "reference_number": invoice.sr_number,
        "customer_name": invoice.customer_name,
        "issued_by_name": actor.full_name,
        "issued_by_email": actor.email,
        "invoice_date": invoice.invoice_date.isoformat() if invoice.invoice_date else None,
        "payment_method": invoice.payment_method,
        "branch_name": branch.branch_name,
        "branch_phone_number": branch.branch_phone_number,
        "branch_address": branch.address,
        **_notice_totals(priced),
    }


def _expense_notice(invoice: ExpenseInvoice, branch: Branch, actor: Worker, priced: PricedInvoiceTotals) -> dict:
    return {
        "subject": f"Expense invoice {invoice.ref_number} from {branch.branch_name}",
        "reference_number": invoice.ref_number,
        "payer_name": invoice.payer_name,
        "payer_email": invoice.payer_email,
        "recipient_name": invoice.recipient_name,
        "type_of_expense": invoice.type_of_expense,
        "payment_method": invoice.payment_method,
        "description": invoice.description,
        "branch_name": branch.branch_name,
        "branch_phone_number": branch.branch_phone_number,
        "branch_address": branch.address,
        **_notice_totals(priced),
    }


SALES_RECEIPT = InvoiceKind(
    code=INVOICE_KIND_SALES_RECEIPT,
    slug="sales-receipts",
    label="Sales receipt invoice",
    model=SalesReceipt,
    line_model=SalesReceiptLine,
    reference_field="sr_number",
    item_type=ITEM_TYPE_PRODUCT,
    item_key="product_id",
    items_field="products",
    recipient_field="customer_email",
    header_policy=ModelValidationPolicy(
        writable_fields={
            "sr_number", "customer_name", "customer_email", "customer_phone_number",
            "mobile_number", "customer_address", "description", "note",
            "payment_method", "invoice_date", "message_to_customer", "message_to_statement",
        },
        required_on_create={"sr_number", "customer_name"},
        ignored_fields=COMPUTED_FIELDS,
        email_fields={"customer_email"},
    ),
    build_notice=_sales_receipt_notice,
)

EXPENSE = InvoiceKind(
    code=INVOICE_KIND_EXPENSE,
    slug="expenses",
    label="Expense invoice",
    model=ExpenseInvoice,
    line_model=ExpenseInvoiceLine,
    reference_field="ref_number",
    item_type=ITEM_TYPE_EXPENSE,
    item_key="item_id",
    items_field="expense_items",
    recipient_field="recipient_email",
    header_policy=ModelValidationPolicy(
        writable_fields={
            "ref_number", "payer_name", "payer_email", "recipient_name", "recipient_email",
            "type_of_expense", "payment_method", "description", "message_on_statement",
        },
        required_on_create={"ref_number", "recipient_name", "recipient_email", "type_of_expense"},
        ignored_fields=COMPUTED_FIELDS,
        email_fields={"payer_email", "recipient_email"},
    ),
    build_notice=_expense_notice,
)

INVOICE_KINDS = {kind.code: kind for kind in (SALES_RECEIPT, EXPENSE)}
INVOICE_KINDS_BY_SLUG = {kind.slug: kind for kind in (SALES_RECEIPT, EXPENSE)}


def get_kind(code_or_slug: str) -> InvoiceKind:
    kind = INVOICE_KINDS.get(code_or_slug) or INVOICE_KINDS_BY_SLUG.get(code_or_slug)
    if kind is None:
        raise NotFoundError(f"Unknown invoice kind: {code_or_slug}")
    return kind


def _split_payload(kind: InvoiceKind, payload) -> tuple[dict, object, object, bool, bool]:
    """Separate header fields from items and tax. Returns (header, items, tax, has_items, has_tax)."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    header = dict(payload)
    has_items = kind.items_field in header
    has_tax = "tax" in header
    items = header.pop(kind.items_field, None)
    tax = header.pop("tax", None)
    return header, items, tax, has_items, has_tax


def _find_by_reference(kind: InvoiceKind, reference: str):
    column = getattr(kind.model, kind.reference_field)
    return db.session.query(kind.model).filter(column == reference).first()


def _require_reference_available(kind: InvoiceKind, reference: str, *, exclude_id: str | None = None) -> None:
    existing = _find_by_reference(kind, reference)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError(
            f"{kind.label} reference number already exists",
            details={kind.reference_field: reference},
        )


def _build_lines(kind: InvoiceKind, priced: PricedInvoiceTotals) -> list:
    lines = []
    for line in priced.lines:
        values = dict(
            position=line.position,
            catalog_item_id=line.item_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            discount_cents=line.discount_cents,
            line_total_cents=line.line_total_cents,
        )
        if kind.line_model is ExpenseInvoiceLine:
            values["item_description"] = line.item_description
        lines.append(kind.line_model(**values))
    return lines


def _line_signature(kind: InvoiceKind, line) -> tuple:
    # Works for both stored line rows and PricedLine values
    return (
        line.position,
        getattr(line, "catalog_item_id", None) or getattr(line, "item_id", None),
        line.quantity,
        line.unit_price_cents,
        line.discount_cents,
        line.line_total_cents,
        getattr(line, "item_description", None) if kind.line_model is ExpenseInvoiceLine else None,
    )


def _apply_totals(invoice, tax_basis_points: int, subtotal: int, tax_cents: int, grand_total: int) -> None:
    invoice.tax_basis_points = tax_basis_points
    invoice.subtotal_cents = subtotal
    invoice.tax_cents = tax_cents
    invoice.grand_total_cents = grand_total


def _commit_invoice(kind: InvoiceKind, reference: str | None) -> None:
    """Commit the invoice write, mapping store failures to Conflict / PersistenceError."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if reference is not None and _find_by_reference(kind, reference) is not None:
            raise ConflictError(
                f"{kind.label} reference number already exists",
                details={kind.reference_field: reference},
            ) from exc
        current_app.logger.exception("Integrity error saving %s", kind.code)
        raise PersistenceError(f"Failed to save {kind.label.lower()}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save %s", kind.code)
        raise PersistenceError(f"Failed to save {kind.label.lower()}") from exc


def _resolve_invoice(kind: InvoiceKind, invoice_id: str):
    invoice = db.session.get(kind.model, invoice_id)
    if invoice is None:
        raise NotFoundError(f"{kind.label} not found")
    return invoice


def clamp_limit(limit) -> int:
    """Clamp a caller page size into 1..INVOICE_LIST_PAGE_CAP; None means the cap."""
    cap = current_app.config.get("INVOICE_LIST_PAGE_CAP", 10)
    if limit is None:
        return cap
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError("limit must be an integer")
    return max(1, min(limit, cap))


def create_invoice(kind: InvoiceKind, actor_id: str, branch_id: str, payload: dict) -> InvoiceResult:
    require_identifier(actor_id, "actor_id")
    require_identifier(branch_id, "branch_id")

    header_raw, items, tax, _, _ = _split_payload(kind, payload)
    header = validate_payload(model=kind.model, payload=header_raw, policy=kind.header_policy, partial=False)
    validate_line_items(items, item_key=kind.item_key)
    parse_tax_percent(tax)

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.CREATE_INVOICE, branch_id)
    branch = resolve_branch(branch_id)

    reference = header[kind.reference_field]
    _require_reference_available(kind, reference)

    priced = price_line_items(items, tax, item_type=kind.item_type, item_key=kind.item_key)

    if kind is SALES_RECEIPT and not header.get("mobile_number"):
        header["mobile_number"] = branch.branch_phone_number

    invoice = kind.model(
        **header,
        branch_id=branch.id,
        created_by_worker_id=actor.id,
    )
    _apply_totals(invoice, priced.tax_basis_points, priced.subtotal_cents, priced.tax_cents, priced.grand_total_cents)
    invoice.lines = _build_lines(kind, priced)

    db.session.add(invoice)
    _commit_invoice(kind, reference)

    branch_linked = True
    try:
        branch_service.link_invoice(branch, invoice.id, kind.code)
    except (PersistenceError, NotFoundError) as exc:
        branch_linked = False
        current_app.logger.warning(
            "%s %s saved but not linked to branch %s: %s",
            kind.label, invoice.id, branch.id, exc.message,
        )

    notification_status = notification_service.notify_invoice_created(
        kind.code,
        invoice.id,
        getattr(invoice, kind.recipient_field),
        kind.build_notice(invoice, branch, actor, priced),
    )

    return InvoiceResult(
        invoice=invoice,
        branch_linked=branch_linked,
        notification_status=notification_status,
    )


def update_invoice(kind: InvoiceKind, actor_id: str, invoice_id: str, payload: dict):
    """
    Patch whitelisted fields. Absent keys keep their stored value.

    Any item-affecting change (items or tax) recomputes the whole aggregate:
    items replace the line collection and are re-priced from the catalog,
    tax alone re-totals the stored lines.
    """
    require_identifier(actor_id, "actor_id")
    require_identifier(invoice_id, "invoice_id")

    header_raw, items, tax, has_items, has_tax = _split_payload(kind, payload)
    patch = validate_payload(model=kind.model, payload=header_raw, policy=kind.header_policy, partial=True)
    if has_items:
        validate_line_items(items, item_key=kind.item_key)
    if has_tax:
        tax_basis_points = parse_tax_percent(tax)

    actor = resolve_actor(actor_id)
    require_role_permits(actor, PolicyAction.UPDATE_INVOICE)
    invoice = _resolve_invoice(kind, invoice_id)
    require_authorized(actor, PolicyAction.UPDATE_INVOICE, invoice.branch_id)

    reference = patch.get(kind.reference_field)
    if reference is not None and reference != getattr(invoice, kind.reference_field):
        _require_reference_available(kind, reference, exclude_id=invoice.id)

    for field_name, value in patch.items():
        setattr(invoice, field_name, value)

    if has_items:
        priced = price_line_items(
            items,
            tax if has_tax else Decimal(invoice.tax_basis_points) / 100,
            item_type=kind.item_type,
            item_key=kind.item_key,
        )
        current = [_line_signature(kind, line) for line in invoice.lines]
        incoming = [_line_signature(kind, line) for line in priced.lines]
        if current != incoming:
            invoice.lines = _build_lines(kind, priced)
        _apply_totals(invoice, priced.tax_basis_points, priced.subtotal_cents, priced.tax_cents, priced.grand_total_cents)
    elif has_tax:
        subtotal, tax_cents, grand_total = compute_totals(
            [line.line_total_cents for line in invoice.lines], tax_basis_points
        )
        _apply_totals(invoice, tax_basis_points, subtotal, tax_cents, grand_total)

    _commit_invoice(kind, reference)
    return invoice


def get_invoice(kind: InvoiceKind, actor_id: str, invoice_id: str):
    require_identifier(actor_id, "actor_id")
    require_identifier(invoice_id, "invoice_id")

    actor = resolve_actor(actor_id)
    require_role_permits(actor, PolicyAction.READ_INVOICE)
    invoice = _resolve_invoice(kind, invoice_id)
    require_authorized(actor, PolicyAction.READ_INVOICE, invoice.branch_id)
    return invoice


def list_branch_invoices(kind: InvoiceKind, actor_id: str, branch_id: str, limit: int | None = None) -> list:
    require_identifier(actor_id, "actor_id")
    require_identifier(branch_id, "branch_id")
    limit = clamp_limit(limit)

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.READ_INVOICE, branch_id)
    resolve_branch(branch_id)

    return (
        db.session.query(kind.model)
        .filter(kind.model.branch_id == branch_id)
        .order_by(kind.model.created_at.desc(), kind.model.id.asc())
        .limit(limit)
        .all()
    )


def list_all_invoices(kind: InvoiceKind, actor_id: str, limit: int | None = None) -> list:
    require_identifier(actor_id, "actor_id")
    limit = clamp_limit(limit)

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.LIST_ALL_INVOICES)

    return (
        db.session.query(kind.model)
        .order_by(kind.model.created_at.desc(), kind.model.id.asc())
        .limit(limit)
        .all()
    )


def delete_invoice(kind: InvoiceKind, actor_id: str, invoice_id: str) -> DeleteResult:
    """
    Admin-only removal. The branch list entry is unlinked after the delete
    commit; if that second write fails the dangling id is left for
    branch_service.reconcile_branch.
    """
    require_identifier(actor_id, "actor_id")
    require_identifier(invoice_id, "invoice_id")

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.DELETE_INVOICE)
    invoice = _resolve_invoice(kind, invoice_id)
    branch_id = invoice.branch_id

    db.session.delete(invoice)
    _commit_invoice(kind, None)

    branch_unlinked = False
    branch = branch_service.get_branch(branch_id)
    if branch is not None:
        try:
            branch_service.unlink_invoice(branch, invoice_id, kind.code)
            branch_unlinked = True
        except (PersistenceError, NotFoundError) as exc:
            current_app.logger.warning(
                "%s %s deleted but still listed on branch %s: %s",
                kind.label, invoice_id, branch_id, exc.message,
            )

    return DeleteResult(invoice_id=invoice_id, branch_id=branch_id, branch_unlinked=branch_unlinked)
