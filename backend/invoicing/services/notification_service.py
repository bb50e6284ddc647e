# Overview: Invoice notice outbox and best-effort delivery through a pluggable sink.

"""
Invoice notifications.

WHY: Emailing the customer/recipient is a side channel. Its failure must not
turn an already-committed invoice into an error response.

FLOW:
1. Invoice committed (invoice_service)
2. queue_invoice_notice writes a PENDING outbox row (own commit)
3. dispatch_entry tries the sink once; the outcome (SENT / FAILED + error)
   is stored on the row
4. `flask notifications retry` re-dispatches FAILED rows until
   NOTIFICATION_MAX_ATTEMPTS, `flask notifications dispatch` drains PENDING
   rows when NOTIFICATION_DISPATCH_MODE is "deferred"

Nothing in this module raises into the invoice operation.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import DeliveryError
from ..models import NotificationOutbox
from ..models.notifications import STATUS_FAILED, STATUS_PENDING, STATUS_SENT
from invoicing.time_utils import utcnow


SINK_EXTENSION_KEY = "invoice_notification_sink"

# Result values reported alongside a created invoice, besides SENT / FAILED
NOTICE_QUEUED = "QUEUED"
NOTICE_SKIPPED = "SKIPPED"
NOTICE_NOT_QUEUED = "NOT_QUEUED"


class NotificationSink:
    """Delivery backend. Implementations raise DeliveryError on failure."""

    def send_invoice_notice(self, recipient: str, payload: dict) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """Default sink when no mail server is configured."""

    def send_invoice_notice(self, recipient: str, payload: dict) -> None:
        current_app.logger.info(
            "Invoice notice for %s: %s %s",
            recipient,
            payload.get("subject"),
            payload.get("reference_number"),
        )


class SmtpNotificationSink(NotificationSink):
    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, recipient: str, payload: dict) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = payload.get("subject", "Invoice")
        message.set_content(render_notice_text(payload))
        return message

    def send_invoice_notice(self, recipient: str, payload: dict) -> None:
        try:
            message = self._build_message(recipient, payload)
        except ValueError as exc:
            raise DeliveryError(f"Invalid notice headers: {exc}") from exc
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc.__class__.__name__}") from exc


def _format_cents(cents: int | None) -> str:
    cents = cents or 0
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def render_notice_text(payload: dict) -> str:
    lines = [
        payload.get("subject", "Invoice"),
        f"Reference: {payload.get('reference_number')}",
        f"Branch: {payload.get('branch_name')}",
        "",
    ]
    for item in payload.get("lines", []):
        lines.append(
            f"- {item.get('item_name')} x{item.get('quantity')} @ {_format_cents(item.get('unit_price_cents'))}"
            f" less {_format_cents(item.get('discount_cents'))} = {_format_cents(item.get('line_total_cents'))}"
        )
    lines += [
        "",
        f"Subtotal: {_format_cents(payload.get('subtotal_cents'))}",
        f"Tax ({payload.get('tax_percent', 0)}%): {_format_cents(payload.get('tax_cents'))}",
        f"Grand total: {_format_cents(payload.get('grand_total_cents'))}",
    ]
    return "\n".join(lines)


def init_notifications(app) -> None:
    """Install the configured sink unless one is already set (tests)."""
    if SINK_EXTENSION_KEY in app.extensions:
        return
    if app.config.get("MAIL_SERVER"):
        sink = SmtpNotificationSink(
            app.config["MAIL_SERVER"],
            app.config.get("MAIL_PORT", 25),
            sender=app.config.get("NOTIFICATION_SENDER"),
            username=app.config.get("MAIL_USERNAME"),
            password=app.config.get("MAIL_PASSWORD"),
            use_tls=app.config.get("MAIL_USE_TLS", False),
            timeout=app.config.get("MAIL_TIMEOUT_SECONDS", 10.0),
        )
    else:
        sink = LoggingNotificationSink()
    app.extensions[SINK_EXTENSION_KEY] = sink


def set_sink(app, sink: NotificationSink) -> None:
    app.extensions[SINK_EXTENSION_KEY] = sink


def get_sink() -> NotificationSink:
    sink = current_app.extensions.get(SINK_EXTENSION_KEY)
    if sink is None:
        sink = LoggingNotificationSink()
        current_app.extensions[SINK_EXTENSION_KEY] = sink
    return sink


def queue_invoice_notice(kind: str, invoice_id: str, recipient: str, payload: dict) -> NotificationOutbox:
    entry = NotificationOutbox(
        invoice_kind=kind,
        invoice_id=invoice_id,
        recipient=recipient,
        payload=payload,
        status=STATUS_PENDING,
        attempts=0,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def _record_failure(entry: NotificationOutbox, error: str) -> None:
    entry.status = STATUS_FAILED
    entry.last_error = error[:255]
    current_app.logger.warning(
        "Invoice notice %s for %s %s failed (attempt %s): %s",
        entry.id, entry.invoice_kind, entry.invoice_id, entry.attempts, error,
    )


def dispatch_entry(entry: NotificationOutbox) -> str:
    """
    Attempt delivery once and record the outcome on the outbox row.

    Any exception from the sink counts as a failed delivery. Only the
    outcome commit can raise (SQLAlchemyError).
    """
    entry.attempts = (entry.attempts or 0) + 1
    try:
        get_sink().send_invoice_notice(entry.recipient, entry.payload)
    except DeliveryError as exc:
        _record_failure(entry, exc.message)
    except Exception as exc:
        current_app.logger.exception("Notification sink raised for notice %s", entry.id)
        _record_failure(entry, f"{exc.__class__.__name__}: {exc}")
    else:
        entry.status = STATUS_SENT
        entry.last_error = None
        entry.sent_at = utcnow()
    db.session.commit()
    return entry.status


def notify_invoice_created(kind: str, invoice_id: str, recipient: str | None, payload: dict) -> str:
    """
    Queue and (in inline mode) deliver an invoice notice.

    Returns one of SENT / FAILED / QUEUED / SKIPPED / NOT_QUEUED. Never raises
    for delivery or outbox failures: those are logged only.
    """
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True) or not recipient:
        return NOTICE_SKIPPED

    try:
        entry = queue_invoice_notice(kind, invoice_id, recipient, payload)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to queue invoice notice for %s %s", kind, invoice_id)
        return NOTICE_NOT_QUEUED

    if current_app.config.get("NOTIFICATION_DISPATCH_MODE", "inline") != "inline":
        return NOTICE_QUEUED

    try:
        return dispatch_entry(entry)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to record invoice notice outcome %s", entry.id)
        return STATUS_FAILED


def _dispatch_many(entries: list[NotificationOutbox]) -> dict:
    counts = {STATUS_SENT: 0, STATUS_FAILED: 0}
    for entry in entries:
        counts[dispatch_entry(entry)] += 1
    return counts


def dispatch_pending(limit: int = 100) -> dict:
    entries = (
        db.session.query(NotificationOutbox)
        .filter_by(status=STATUS_PENDING)
        .order_by(NotificationOutbox.created_at.asc(), NotificationOutbox.id.asc())
        .limit(limit)
        .all()
    )
    return _dispatch_many(entries)


def retry_failed(max_attempts: int | None = None, limit: int = 100) -> dict:
    """Re-dispatch FAILED rows that still have attempts left."""
    if max_attempts is None:
        max_attempts = current_app.config.get("NOTIFICATION_MAX_ATTEMPTS", 3)
    entries = (
        db.session.query(NotificationOutbox)
        .filter(
            NotificationOutbox.status == STATUS_FAILED,
            NotificationOutbox.attempts < max_attempts,
        )
        .order_by(NotificationOutbox.created_at.asc(), NotificationOutbox.id.asc())
        .limit(limit)
        .all()
    )
    return _dispatch_many(entries)
