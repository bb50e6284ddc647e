from __future__ import annotations

from ..extensions import db
from ..identifiers import new_id
from invoicing.time_utils import to_utc_z


ROLE_ADMIN = "Admin"
ROLE_MANAGER = "Manager"
ROLE_STAFF = "Staff"
VALID_ROLES = {ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF}


class Worker(db.Model):
    """
    Worker identity acting on invoices.

    Credentials live in the upstream auth service; this table only holds the
    role and home branch used for authorization. Non-Admin workers must have
    a branch_id.
    """
    __tablename__ = "workers"
    __table_args__ = (
        db.CheckConstraint("role IN ('Admin', 'Manager', 'Staff')", name="ck_workers_role"),
        db.CheckConstraint("role = 'Admin' OR branch_id IS NOT NULL", name="ck_workers_branch_required"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(16), nullable=False, index=True)
    branch_id = db.Column(db.String(32), db.ForeignKey("branches.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("workers", lazy=True))

    def __repr__(self) -> str:
        return f"<Worker id={self.id} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def summary_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "role": self.role,
        }

    def to_dict(self) -> dict:
        return {
            **self.summary_dict(),
            "address": self.address,
            "branch_id": self.branch_id,
            "branch": self.branch.summary_dict() if self.branch else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
