from __future__ import annotations

from ..extensions import db
from invoicing.time_utils import to_utc_z, utcnow


STATUS_PENDING = "PENDING"
STATUS_SENT = "SENT"
STATUS_FAILED = "FAILED"


class NotificationOutbox(db.Model):
    """
    Invoice notice waiting for (or done with) delivery.

    Rows are written after the invoice is committed. Delivery outcome lives
    here, never on the invoice operation's result. FAILED rows are retried by
    `flask notifications retry` until max attempts.
    """
    __tablename__ = "notification_outbox"
    __table_args__ = (
        db.Index("ix_notification_outbox_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_kind = db.Column(db.String(32), nullable=False)
    invoice_id = db.Column(db.String(32), nullable=False, index=True)
    recipient = db.Column(db.String(255), nullable=False)
    payload = db.Column(db.JSON, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_kind": self.invoice_kind,
            "invoice_id": self.invoice_id,
            "recipient": self.recipient,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": to_utc_z(self.created_at),
            "sent_at": to_utc_z(self.sent_at),
        }
