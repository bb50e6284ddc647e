# Overview: Resolves the acting worker and target branch, and computes scope.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidIdentifierError, NotFoundError
from ..identifiers import is_valid_identifier
from ..models import Branch, Worker
from ..models.workers import ROLE_ADMIN, ROLE_MANAGER


def require_identifier(value, label: str) -> str:
    """Reject malformed ids before any store lookup is attempted."""
    if not is_valid_identifier(value):
        raise InvalidIdentifierError(f"Invalid {label}", details={"field": label})
    return value


def resolve_actor(actor_id) -> Worker:
    require_identifier(actor_id, "actor_id")
    worker = db.session.get(Worker, actor_id)
    if not worker:
        raise NotFoundError("Worker not found")
    return worker


def resolve_branch(branch_id) -> Branch:
    require_identifier(branch_id, "branch_id")
    branch = db.session.get(Branch, branch_id)
    if not branch:
        raise NotFoundError("Branch not found")
    return branch


def scope_for(actor: Worker) -> set[str] | None:
    """
    Branch ids the actor may act on.

    None means every branch (Admin). Staff get an empty set: they have no
    invoice or staff-directory scope.
    """
    if actor.role == ROLE_ADMIN:
        return None
    if actor.role == ROLE_MANAGER and actor.branch_id:
        return {str(actor.branch_id)}
    return set()
