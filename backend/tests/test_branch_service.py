"""
Branch back-reference tests.

Verifies:
- link/unlink are idempotent
- reconcile_branch rebuilds lists from the invoice tables
"""

import pytest

from invoicing.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from invoicing.extensions import db
from invoicing.models import Branch
from invoicing.services import branch_service, invoice_service
from invoicing.services.branch_service import _rebuild
from invoicing.services.invoice_service import EXPENSE, SALES_RECEIPT

from conftest import expense_payload, sales_receipt_payload


class TestBranchRecords:

    def test_duplicate_name_is_conflict(self, branch_x):
        with pytest.raises(ConflictError):
            branch_service.create_branch("Branch X - Downtown")

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            branch_service.create_branch("   ")

    def test_new_branch_has_empty_lists(self, branch_x):
        data = branch_x.to_dict()
        assert data["sales_receipt_invoice_ids"] == []
        assert data["expense_invoice_ids"] == []

    def test_set_branch_staff(self, branch_x, manager_x):
        branch = branch_service.set_branch_staff(branch_x.id, manager_x.id)
        assert branch.branch_staff_id == manager_x.id


class TestLinking:

    def test_link_is_idempotent(self, branch_x):
        invoice_id = "1" * 32
        assert branch_service.link_invoice(branch_x, invoice_id, "sales_receipt") is True
        assert branch_service.link_invoice(branch_x, invoice_id, "sales_receipt") is False

        branch = db.session.get(Branch, branch_x.id)
        assert branch.sales_receipt_invoice_ids == [invoice_id]
        assert branch.expense_invoice_ids == []

    def test_link_keeps_append_order(self, branch_x):
        for invoice_id in ("1" * 32, "2" * 32, "3" * 32):
            branch_service.link_invoice(branch_x, invoice_id, "expense")
        assert db.session.get(Branch, branch_x.id).expense_invoice_ids == ["1" * 32, "2" * 32, "3" * 32]

    def test_unlink_is_idempotent(self, branch_x):
        invoice_id = "1" * 32
        branch_service.link_invoice(branch_x, invoice_id, "expense")
        assert branch_service.unlink_invoice(branch_x, invoice_id, "expense") is True
        assert branch_service.unlink_invoice(branch_x, invoice_id, "expense") is False
        assert db.session.get(Branch, branch_x.id).expense_invoice_ids == []

    def test_unknown_kind(self, branch_x):
        with pytest.raises(ValidationError):
            branch_service.link_invoice(branch_x, "1" * 32, "refund")


class TestReconcile:

    def test_rebuild_keeps_order_drops_dangling_appends_missing(self):
        rebuilt, added, removed = _rebuild(["b", "dangling", "a", "b"], ["a", "b", "c"])
        assert rebuilt == ["b", "a", "c"]
        assert added == ["c"]
        assert removed == ["dangling", "b"]

    def test_reconcile_repairs_both_lists(self, admin, branch_x, product_c, expense_item):
        receipt = invoice_service.create_invoice(
            SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c)
        ).invoice
        expense = invoice_service.create_invoice(
            EXPENSE, admin.id, branch_x.id, expense_payload(expense_item)
        ).invoice

        branch = db.session.get(Branch, branch_x.id)
        branch.sales_receipt_invoice_ids = ["d" * 32]
        branch.expense_invoice_ids = []
        db.session.commit()

        report = branch_service.reconcile_branch(branch_x.id)

        assert report.changed
        assert report.added == {"sales_receipt": [receipt.id], "expense": [expense.id]}
        assert report.removed == {"sales_receipt": ["d" * 32], "expense": []}

        branch = db.session.get(Branch, branch_x.id)
        assert branch.sales_receipt_invoice_ids == [receipt.id]
        assert branch.expense_invoice_ids == [expense.id]

    def test_reconcile_is_noop_when_consistent(self, admin, branch_x, product_c):
        invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))
        assert not branch_service.reconcile_branch(branch_x.id).changed

    def test_reconcile_ignores_other_branches(self, admin, branch_x, branch_y, product_c):
        invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_y.id, sales_receipt_payload(product_c))
        report = branch_service.reconcile_branch(branch_x.id)
        assert report.added["sales_receipt"] == []

    def test_reconcile_all(self, branch_x, branch_y):
        reports = branch_service.reconcile_all_branches()
        assert {report.branch_id for report in reports} == {branch_x.id, branch_y.id}

    def test_reconcile_unknown_branch(self, db_session):
        with pytest.raises(NotFoundError):
            branch_service.reconcile_branch("0" * 32)

    def test_reconcile_as_manager_forbidden(self, manager_x, branch_x):
        with pytest.raises(ForbiddenError):
            branch_service.reconcile_branch_as(manager_x.id, branch_x.id)


class TestViewBranch:

    def test_manager_sees_own_branch(self, manager_x, branch_x):
        assert branch_service.view_branch(manager_x.id, branch_x.id).id == branch_x.id

    def test_manager_cannot_see_other_branch(self, manager_x, branch_y):
        with pytest.raises(ForbiddenError):
            branch_service.view_branch(manager_x.id, branch_y.id)
