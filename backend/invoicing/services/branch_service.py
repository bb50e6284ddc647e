# Overview: Branch records and their denormalized invoice id collections.

"""
Branch back-reference coordinator.

WHY: Each branch carries ordered lists of its sales receipt and expense
invoice ids. Invoice creation and the branch list append are two separate
commits, so the lists are treated as a cache of invoice existence:
- link/unlink are idempotent (re-adding or re-removing is a no-op)
- reconcile_branch rebuilds the lists from the invoice tables, which are
  the source of truth
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from ..models import Branch, ExpenseInvoice, SalesReceipt
from ..models.invoices import INVOICE_KIND_EXPENSE, INVOICE_KIND_SALES_RECEIPT
from ..policy import PolicyAction
from .concurrency import lock_branch, run_with_retry
from .identity_service import require_identifier, resolve_actor, resolve_branch
from .permission_service import require_authorized


BRANCH_COLLECTIONS = {
    INVOICE_KIND_SALES_RECEIPT: "sales_receipt_invoice_ids",
    INVOICE_KIND_EXPENSE: "expense_invoice_ids",
}

_INVOICE_MODELS = {
    INVOICE_KIND_SALES_RECEIPT: SalesReceipt,
    INVOICE_KIND_EXPENSE: ExpenseInvoice,
}


@dataclass
class ReconcileReport:
    branch_id: str
    added: dict[str, list[str]] = field(default_factory=dict)
    removed: dict[str, list[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return any(self.added.values()) or any(self.removed.values())

    def to_dict(self) -> dict:
        return {
            "branch_id": self.branch_id,
            "added": self.added,
            "removed": self.removed,
            "changed": self.changed,
        }


def _collection_attr(kind: str) -> str:
    try:
        return BRANCH_COLLECTIONS[kind]
    except KeyError:
        raise ValidationError(f"Unknown invoice kind: {kind}")


def create_branch(
    branch_name: str,
    *,
    branch_phone_number: str | None = None,
    address: str | None = None,
) -> Branch:
    if not branch_name or not str(branch_name).strip():
        raise ValidationError("Branch name is required")

    branch = Branch(
        branch_name=str(branch_name).strip(),
        branch_phone_number=branch_phone_number,
        address=address,
        sales_receipt_invoice_ids=[],
        expense_invoice_ids=[],
    )
    db.session.add(branch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Branch name already exists")
    return branch


def get_branch(branch_id: str) -> Branch | None:
    return db.session.get(Branch, branch_id)


def list_branches() -> list[Branch]:
    return db.session.query(Branch).order_by(Branch.branch_name.asc()).all()


def set_branch_staff(branch_id: str, worker_id: str | None) -> Branch:
    def _op():
        branch = lock_branch(branch_id)
        if not branch:
            raise NotFoundError("Branch not found")
        branch.branch_staff_id = worker_id
        db.session.commit()
        return branch

    return run_with_retry(_op, label=f"Assigning staff to branch {branch_id}")


def _mutate_collection(branch_id: str, kind: str, mutate) -> bool:
    attr = _collection_attr(kind)

    def _op():
        branch = lock_branch(branch_id)
        if not branch:
            raise NotFoundError("Branch not found")

        current = list(getattr(branch, attr) or [])
        updated = mutate(current)
        if updated == current:
            return False

        # Reassign: JSON columns only track replacement, not in-place edits
        setattr(branch, attr, updated)
        db.session.commit()
        return True

    try:
        return run_with_retry(_op, label=f"Updating branch {branch_id} {attr}")
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning("Branch %s %s update failed: %s", branch_id, attr, exc)
        raise PersistenceError("Failed to update branch invoice list") from exc


def link_invoice(branch: Branch, invoice_id: str, kind: str) -> bool:
    """
    Append invoice_id to the branch collection for kind.

    Returns False when the id was already present.
    Raises PersistenceError when the branch write fails.
    """
    return _mutate_collection(
        branch.id,
        kind,
        lambda ids: ids if invoice_id in ids else ids + [invoice_id],
    )


def unlink_invoice(branch: Branch, invoice_id: str, kind: str) -> bool:
    """Remove every occurrence of invoice_id; False when it was not present."""
    return _mutate_collection(
        branch.id,
        kind,
        lambda ids: [i for i in ids if i != invoice_id],
    )


def _rebuild(current: list[str], truth_ordered: list[str]) -> tuple[list[str], list[str], list[str]]:
    truth = set(truth_ordered)

    kept: list[str] = []
    removed: list[str] = []
    for invoice_id in current:
        if invoice_id in truth and invoice_id not in kept:
            kept.append(invoice_id)
        else:
            removed.append(invoice_id)

    added = [invoice_id for invoice_id in truth_ordered if invoice_id not in kept]
    return kept + added, added, removed


def reconcile_branch(branch_id: str) -> ReconcileReport:
    """
    Rebuild a branch's invoice id lists from the invoice tables.

    Existing order is kept for ids that still reference invoices of this
    branch; missing ids are appended in creation order; dangling or
    duplicated ids are dropped.
    """
    report = ReconcileReport(branch_id=branch_id)

    def _op():
        branch = lock_branch(branch_id)
        if not branch:
            raise NotFoundError("Branch not found")

        for kind, attr in BRANCH_COLLECTIONS.items():
            model = _INVOICE_MODELS[kind]
            rows = (
                db.session.query(model.id)
                .filter(model.branch_id == branch_id)
                .order_by(model.created_at.asc(), model.id.asc())
                .all()
            )
            current = list(getattr(branch, attr) or [])
            rebuilt, added, removed = _rebuild(current, [row[0] for row in rows])

            report.added[kind] = added
            report.removed[kind] = removed
            if rebuilt != current:
                setattr(branch, attr, rebuilt)

        db.session.commit()
        return report

    try:
        result = run_with_retry(_op, label=f"Reconciling branch {branch_id}")
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to reconcile branch invoice lists") from exc

    if result.changed:
        current_app.logger.info(
            "Reconciled branch %s: added=%s removed=%s", branch_id, result.added, result.removed
        )
    return result


def reconcile_all_branches() -> list[ReconcileReport]:
    branch_ids = [row[0] for row in db.session.query(Branch.id).order_by(Branch.branch_name.asc()).all()]
    return [reconcile_branch(branch_id) for branch_id in branch_ids]


def view_branch(actor_id: str, branch_id: str) -> Branch:
    """Branch record with its invoice id lists, readable by whoever may read its invoices."""
    require_identifier(actor_id, "actor_id")
    require_identifier(branch_id, "branch_id")

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.READ_INVOICE, branch_id)
    return resolve_branch(branch_id)


def reconcile_branch_as(actor_id: str, branch_id: str) -> ReconcileReport:
    require_identifier(actor_id, "actor_id")
    require_identifier(branch_id, "branch_id")

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.RECONCILE_BRANCH, branch_id)
    resolve_branch(branch_id)
    return reconcile_branch(branch_id)
