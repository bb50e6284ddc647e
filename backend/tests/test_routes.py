"""
HTTP route tests through the Flask test client.

Verifies:
- Missing identity header returns 401, malformed returns 400
- Service errors map to their HTTP status with a stable error kind
- Create / read / update / list / delete round trips
"""

import pytest

from invoicing.models import SecurityEvent

from conftest import actor_headers, expense_payload, sales_receipt_payload


class TestIdentityHeader:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/invoices/sales-receipts"),
            ("GET", "/api/invoices/expenses/" + "0" * 32),
            ("POST", "/api/invoices/sales-receipts/branch/" + "0" * 32),
            ("GET", "/api/branches/" + "0" * 32),
            ("GET", "/api/workers"),
            ("PATCH", "/api/workers/me"),
        ],
    )
    def test_requires_actor(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401
        assert resp.json["success"] is False

    def test_malformed_actor(self, client, db_session):
        resp = client.get("/api/invoices/sales-receipts", headers={"X-Worker-Id": "42"})
        assert resp.status_code == 400
        assert resp.json["error"] == "InvalidIdentifier"
        assert db_session.query(SecurityEvent).filter_by(event_type="ACTOR_HEADER_INVALID").count() == 1

    def test_unknown_actor(self, client, db_session):
        resp = client.get("/api/invoices/sales-receipts", headers={"X-Worker-Id": "0" * 32})
        assert resp.status_code == 404
        assert resp.json["error"] == "NotFound"


class TestInvoiceRoutes:

    def test_create_and_read(self, client, admin, branch_x, product_c):
        resp = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=sales_receipt_payload(product_c, quantity=3, tax=8),
            headers=actor_headers(admin),
        )
        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["branch_linked"] is True
        assert data["notification_status"] == "SENT"

        invoice = data["invoice"]
        assert invoice["grand_total_cents"] == 32400
        assert invoice["tax_percent"] == 8
        assert invoice["branch"]["id"] == branch_x.id
        assert invoice["products"][0]["product_id"] == product_c.id

        resp = client.get(f"/api/invoices/sales-receipts/{invoice['id']}", headers=actor_headers(admin))
        assert resp.status_code == 200
        assert resp.json["data"]["sr_number"] == "SR-0001"

        resp = client.get(f"/api/branches/{branch_x.id}", headers=actor_headers(admin))
        assert resp.json["data"]["sales_receipt_invoice_ids"] == [invoice["id"]]

    def test_conflict(self, client, admin, branch_x, product_c):
        url = f"/api/invoices/sales-receipts/branch/{branch_x.id}"
        client.post(url, json=sales_receipt_payload(product_c), headers=actor_headers(admin))
        resp = client.post(url, json=sales_receipt_payload(product_c), headers=actor_headers(admin))
        assert resp.status_code == 409
        assert resp.json["error"] == "Conflict"

    def test_out_of_scope_manager(self, client, manager_x, branch_y, expense_item):
        resp = client.post(
            f"/api/invoices/expenses/branch/{branch_y.id}",
            json=expense_payload(expense_item),
            headers=actor_headers(manager_x),
        )
        assert resp.status_code == 403
        assert resp.json["error"] == "Forbidden"
        assert resp.json["details"]["reason"] == "OutOfScope"

    def test_validation_error(self, client, admin, branch_x, product_c):
        payload = sales_receipt_payload(product_c)
        payload["products"] = []
        resp = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=payload,
            headers=actor_headers(admin),
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "ValidationError"

    def test_non_json_body(self, client, admin, branch_x):
        resp = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            data="not json",
            content_type="text/plain",
            headers=actor_headers(admin),
        )
        assert resp.status_code == 400

    def test_unknown_kind(self, client, admin):
        resp = client.get("/api/invoices/refunds", headers=actor_headers(admin))
        assert resp.status_code == 404

    def test_update(self, client, manager_x, branch_x, product_c):
        created = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=sales_receipt_payload(product_c, quantity=3, tax=8),
            headers=actor_headers(manager_x),
        ).json["data"]["invoice"]

        resp = client.patch(
            f"/api/invoices/sales-receipts/{created['id']}",
            json={"tax": 0, "note": "Paid in full"},
            headers=actor_headers(manager_x),
        )
        assert resp.status_code == 200
        assert resp.json["data"]["grand_total_cents"] == 30000
        assert resp.json["data"]["note"] == "Paid in full"

    def test_list_and_limit(self, client, admin, branch_x, product_c):
        for i in range(3):
            client.post(
                f"/api/invoices/sales-receipts/branch/{branch_x.id}",
                json=sales_receipt_payload(product_c, f"SR-{i}"),
                headers=actor_headers(admin),
            )

        resp = client.get("/api/invoices/sales-receipts?limit=2", headers=actor_headers(admin))
        assert resp.status_code == 200
        assert len(resp.json["data"]) == 2

        resp = client.get(f"/api/invoices/sales-receipts/branch/{branch_x.id}", headers=actor_headers(admin))
        assert len(resp.json["data"]) == 3

        resp = client.get("/api/invoices/sales-receipts?limit=abc", headers=actor_headers(admin))
        assert resp.status_code == 400

    def test_delete(self, client, admin, branch_x, product_c):
        created = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=sales_receipt_payload(product_c),
            headers=actor_headers(admin),
        ).json["data"]["invoice"]

        resp = client.delete(f"/api/invoices/sales-receipts/{created['id']}", headers=actor_headers(admin))
        assert resp.status_code == 200
        assert resp.json["data"]["branch_unlinked"] is True

        resp = client.delete(f"/api/invoices/sales-receipts/{created['id']}", headers=actor_headers(admin))
        assert resp.status_code == 404

    def test_staff_gets_forbidden(self, client, staff_x):
        resp = client.get(f"/api/invoices/expenses/{'0' * 32}", headers=actor_headers(staff_x))
        assert resp.status_code == 403


class TestBranchAndWorkerRoutes:

    def test_reconcile_admin_only(self, client, admin, manager_x, branch_x):
        resp = client.post(f"/api/branches/{branch_x.id}/reconcile", headers=actor_headers(manager_x))
        assert resp.status_code == 403

        resp = client.post(f"/api/branches/{branch_x.id}/reconcile", headers=actor_headers(admin))
        assert resp.status_code == 200
        assert resp.json["data"]["changed"] is False

    def test_workers(self, client, admin, manager_x, staff_x, branch_x):
        resp = client.get(f"/api/workers/branch/{branch_x.id}", headers=actor_headers(manager_x))
        assert resp.status_code == 200
        assert len(resp.json["data"]) == 2

        resp = client.get("/api/workers", headers=actor_headers(manager_x))
        assert resp.status_code == 403

        resp = client.get(f"/api/workers/{staff_x.id}", headers=actor_headers(admin))
        assert resp.json["data"]["email"] == "sam@shop.test"

        resp = client.patch("/api/workers/me", json={"address": "2 Side St"}, headers=actor_headers(staff_x))
        assert resp.status_code == 200
        assert resp.json["data"]["address"] == "2 Side St"


def test_health(client, db_session):
    resp = client.get("/api/system/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["database"]["status"] == "healthy"
