# Overview: Staff directory reads, self profile updates and worker onboarding.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Worker
from ..models.workers import ROLE_ADMIN, VALID_ROLES
from ..policy import PolicyAction
from ..validation import ModelValidationPolicy, validate_payload
from .identity_service import require_identifier, resolve_actor, resolve_branch
from .invoice_service import clamp_limit
from .permission_service import require_authorized, require_role_permits


PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "email", "phone_number", "address"},
    email_fields={"email"},
)


def create_worker(
    *,
    full_name: str,
    email: str,
    role: str,
    branch_id: str | None = None,
    phone_number: str | None = None,
    address: str | None = None,
) -> Worker:
    """Onboard a worker (bootstrap/CLI path; credentials live upstream)."""
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
    if not full_name or not email:
        raise ValidationError("full_name and email are required")
    if role != ROLE_ADMIN and not branch_id:
        raise ValidationError("branch_id is required for non-Admin workers")
    if branch_id is not None:
        resolve_branch(branch_id)

    worker = Worker(
        full_name=full_name,
        email=email.strip().lower(),
        role=role,
        branch_id=branch_id,
        phone_number=phone_number,
        address=address,
    )
    db.session.add(worker)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")
    return worker


def get_worker(actor_id: str, worker_id: str) -> Worker:
    require_identifier(actor_id, "actor_id")
    require_identifier(worker_id, "worker_id")

    actor = resolve_actor(actor_id)
    if actor.id == worker_id:
        return actor

    require_role_permits(actor, PolicyAction.READ_WORKER)
    worker = db.session.get(Worker, worker_id)
    if not worker:
        raise NotFoundError("Worker not found")
    require_authorized(actor, PolicyAction.READ_WORKER, worker.branch_id)
    return worker


def list_all_workers(actor_id: str, limit: int | None = None) -> list[Worker]:
    require_identifier(actor_id, "actor_id")
    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.LIST_ALL_WORKERS)

    limit = clamp_limit(limit)
    return (
        db.session.query(Worker)
        .order_by(Worker.full_name.asc(), Worker.id.asc())
        .limit(limit)
        .all()
    )


def list_branch_workers(actor_id: str, branch_id: str) -> list[Worker]:
    require_identifier(actor_id, "actor_id")
    require_identifier(branch_id, "branch_id")

    actor = resolve_actor(actor_id)
    require_authorized(actor, PolicyAction.LIST_BRANCH_WORKERS, branch_id)
    resolve_branch(branch_id)

    return (
        db.session.query(Worker)
        .filter(Worker.branch_id == branch_id)
        .order_by(Worker.full_name.asc(), Worker.id.asc())
        .all()
    )


def update_own_profile(actor_id: str, payload: dict) -> Worker:
    """
    Patch the acting worker's own profile fields.

    Absent or blank values keep the stored value; role and branch are not
    writable here.
    """
    require_identifier(actor_id, "actor_id")
    if isinstance(payload, dict):
        payload = {k: v for k, v in payload.items() if v is not None and v != ""}
    patch = validate_payload(model=Worker, payload=payload, policy=PROFILE_POLICY, partial=True)

    actor = resolve_actor(actor_id)
    if "email" in patch:
        patch["email"] = patch["email"].lower()

    for field_name, value in patch.items():
        setattr(actor, field_name, value)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")
    return actor
