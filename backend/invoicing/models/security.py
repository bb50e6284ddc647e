from __future__ import annotations

from ..extensions import db
from invoicing.time_utils import to_utc_z

class SecurityEvent(db.Model):
    """
    Authorization audit log.

    WHY: Track denied invoice/staff operations so out-of-scope attempts by
    managers and staff are visible.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_worker_type", "worker_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    worker_id = db.Column(db.String(32), nullable=True, index=True)
    branch_id = db.Column(db.String(32), nullable=True, index=True)

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED
    action = db.Column(db.String(64), nullable=True)     # e.g., "CREATE_INVOICE"
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/invoices/expenses"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)  # e.g., "OutOfScope: ..."

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "branch_id": self.branch_id,
            "event_type": self.event_type,
            "action": self.action,
            "resource": self.resource,
            "success": self.success,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
