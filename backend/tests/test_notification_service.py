"""
Invoice notification tests.

Verifies:
- Delivery failure never fails the invoice operation
- Any sink exception is recorded as a failed delivery
- Outbox rows record outcome and are retried by retry_failed
- Recipient addresses must be a single address
- Deferred mode only queues
"""

import smtplib

import pytest

from invoicing.errors import DeliveryError, ValidationError
from invoicing.extensions import db
from invoicing.models import NotificationOutbox, SalesReceipt
from invoicing.services import invoice_service, notification_service
from invoicing.services.invoice_service import EXPENSE, SALES_RECEIPT

from conftest import actor_headers, expense_payload, sales_receipt_payload


class BrokenSink(notification_service.NotificationSink):
    """Raises something other than DeliveryError, like a buggy backend."""

    def __init__(self):
        self.calls = 0

    def send_invoice_notice(self, recipient, payload):
        self.calls += 1
        raise RuntimeError("sink exploded")


@pytest.fixture
def broken_sink(app):
    previous = app.extensions.get(notification_service.SINK_EXTENSION_KEY)
    sink = BrokenSink()
    notification_service.set_sink(app, sink)
    yield sink
    notification_service.set_sink(app, previous)


class TestFailureIsolation:

    def test_failed_delivery_still_creates_invoice(self, admin, branch_x, product_c, notice_sink):
        notice_sink.fail = True

        result = invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))

        assert result.notification_status == "FAILED"
        assert result.branch_linked is True
        assert db.session.get(SalesReceipt, result.invoice.id) is not None

        entry = db.session.query(NotificationOutbox).one()
        assert entry.status == "FAILED"
        assert entry.attempts == 1
        assert entry.last_error == "Simulated mail outage"

    def test_retry_delivers_failed_notice(self, admin, branch_x, product_c, notice_sink):
        notice_sink.fail = True
        invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))

        notice_sink.fail = False
        counts = notification_service.retry_failed()

        assert counts == {"SENT": 1, "FAILED": 0}
        entry = db.session.query(NotificationOutbox).one()
        assert entry.status == "SENT"
        assert entry.attempts == 2
        assert entry.sent_at is not None
        assert len(notice_sink.sent) == 1

    def test_retry_stops_at_max_attempts(self, admin, branch_x, product_c, notice_sink):
        notice_sink.fail = True
        invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))

        notification_service.retry_failed(max_attempts=3)
        notification_service.retry_failed(max_attempts=3)
        assert notification_service.retry_failed(max_attempts=3) == {"SENT": 0, "FAILED": 0}
        assert db.session.query(NotificationOutbox).one().attempts == 3

    def test_unexpected_sink_error_still_returns_created(self, client, admin, branch_x, product_c, broken_sink):
        resp = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=sales_receipt_payload(product_c),
            headers=actor_headers(admin),
        )

        assert resp.status_code == 201
        assert resp.json["data"]["notification_status"] == "FAILED"
        assert db.session.query(SalesReceipt).count() == 1

        entry = db.session.query(NotificationOutbox).one()
        assert entry.status == "FAILED"
        assert entry.attempts == 1
        assert entry.last_error == "RuntimeError: sink exploded"

    def test_retry_batch_survives_unexpected_sink_error(self, admin, branch_x, product_c, broken_sink):
        invoice_service.create_invoice(
            SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c, sr_number="SR-0001"),
        )
        invoice_service.create_invoice(
            SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c, sr_number="SR-0002"),
        )

        assert notification_service.retry_failed() == {"SENT": 0, "FAILED": 2}
        assert broken_sink.calls == 4


class TestRecipientAddress:

    def test_multiline_customer_email_rejected(self, client, admin, branch_x, product_c, notice_sink):
        resp = client.post(
            f"/api/invoices/sales-receipts/branch/{branch_x.id}",
            json=sales_receipt_payload(product_c, customer_email="carol@example.test\nBcc: evil@x.test"),
            headers=actor_headers(admin),
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "ValidationError"
        assert db.session.query(SalesReceipt).count() == 0
        assert notice_sink.sent == []

    @pytest.mark.parametrize("address", ["billing@landlord.test, x@y.test", "not-an-address"])
    def test_expense_recipient_must_be_one_address(self, admin, branch_x, expense_item, address):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                EXPENSE, admin.id, branch_x.id, expense_payload(expense_item, recipient_email=address),
            )

    def test_update_rejects_multiline_email(self, admin, branch_x, product_c, notice_sink):
        result = invoice_service.create_invoice(
            SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c),
        )
        with pytest.raises(ValidationError):
            invoice_service.update_invoice(
                SALES_RECEIPT, admin.id, result.invoice.id, {"customer_email": "a@b.test\r\nX: y"},
            )


class TestModes:

    def test_deferred_mode_only_queues(self, app, admin, branch_x, product_c, notice_sink, monkeypatch):
        monkeypatch.setitem(app.config, "NOTIFICATION_DISPATCH_MODE", "deferred")

        result = invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))

        assert result.notification_status == "QUEUED"
        assert notice_sink.sent == []

        assert notification_service.dispatch_pending() == {"SENT": 1, "FAILED": 0}
        assert len(notice_sink.sent) == 1

    def test_disabled(self, app, admin, branch_x, product_c, notice_sink, monkeypatch):
        monkeypatch.setitem(app.config, "NOTIFICATIONS_ENABLED", False)
        result = invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, sales_receipt_payload(product_c))
        assert result.notification_status == "SKIPPED"
        assert db.session.query(NotificationOutbox).count() == 0

    def test_no_recipient_is_skipped(self, admin, branch_x, product_c, notice_sink):
        payload = sales_receipt_payload(product_c)
        payload.pop("customer_email")
        result = invoice_service.create_invoice(SALES_RECEIPT, admin.id, branch_x.id, payload)
        assert result.notification_status == "SKIPPED"
        assert notice_sink.sent == []


class TestSmtpSink:

    def test_smtp_errors_become_delivery_errors(self, monkeypatch):
        def _refuse(*args, **kwargs):
            raise ConnectionRefusedError("no mail server")

        monkeypatch.setattr(smtplib, "SMTP", _refuse)
        sink = notification_service.SmtpNotificationSink("mail.invalid", 25, sender="noreply@test")

        with pytest.raises(DeliveryError):
            sink.send_invoice_notice("carol@example.test", {"subject": "Invoice", "lines": []})

    def test_header_injection_becomes_delivery_error(self, monkeypatch):
        def _unexpected(*args, **kwargs):
            raise AssertionError("SMTP must not be contacted")

        monkeypatch.setattr(smtplib, "SMTP", _unexpected)
        sink = notification_service.SmtpNotificationSink("mail.invalid", 25, sender="noreply@test")

        with pytest.raises(DeliveryError):
            sink.send_invoice_notice("carol@example.test\nBcc: evil@x.test", {"subject": "Invoice", "lines": []})


def test_render_notice_text():
    text = notification_service.render_notice_text({
        "subject": "Sales receipt SR-1 from Branch X",
        "reference_number": "SR-1",
        "branch_name": "Branch X",
        "lines": [{
            "item_name": "Lamp",
            "quantity": 2,
            "unit_price_cents": 5000,
            "discount_cents": 500,
            "line_total_cents": 9500,
        }],
        "subtotal_cents": 9500,
        "tax_percent": 10.0,
        "tax_cents": 950,
        "grand_total_cents": 10450,
    })
    assert "- Lamp x2 @ 50.00 less 5.00 = 95.00" in text
    assert "Grand total: 104.50" in text
