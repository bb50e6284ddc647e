from __future__ import annotations

from ..extensions import db
from ..identifiers import new_id
from invoicing.time_utils import to_utc_z


class Branch(db.Model):
    """
    Branch (physical shop/warehouse) owning invoices and staff.

    The two invoice id lists are a denormalized, ordered cache of invoice
    existence. The invoice tables are the source of truth; the lists are
    rebuilt by branch_service.reconcile_branch.
    """
    __tablename__ = "branches"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    branch_name = db.Column(db.String(120), nullable=False, unique=True)
    branch_phone_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    # Worker in charge of the branch (no FK: workers already reference branches)
    branch_staff_id = db.Column(db.String(32), nullable=True, index=True)

    sales_receipt_invoice_ids = db.Column(db.JSON, nullable=False, default=list)
    expense_invoice_ids = db.Column(db.JSON, nullable=False, default=list)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.branch_name!r}>"

    def summary_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "branch_phone_number": self.branch_phone_number,
            "address": self.address,
        }

    def to_dict(self) -> dict:
        return {
            **self.summary_dict(),
            "branch_staff_id": self.branch_staff_id,
            "sales_receipt_invoice_ids": list(self.sales_receipt_invoice_ids or []),
            "expense_invoice_ids": list(self.expense_invoice_ids or []),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
