# Overview: Turns policy decisions into ForbiddenError and records denials.

"""
Authorization enforcement with security event logging.

DESIGN PRINCIPLES:
- Fail closed: the policy engine denies unknown roles and actions
- Log denials only: granted checks are not logged
- One call site per operation: services call require_authorized before
  touching invoice data
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import ForbiddenError
from ..models import SecurityEvent, Worker
from ..policy import authorize, role_may_attempt
from invoicing.time_utils import utcnow


def log_security_event(
    worker_id: str | None,
    event_type: str,
    success: bool,
    action: str | None = None,
    branch_id: str | None = None,
    reason: str | None = None,
    resource: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - ACTOR_HEADER_INVALID
    """
    event = SecurityEvent(
        worker_id=worker_id,
        branch_id=branch_id,
        event_type=event_type,
        action=action,
        resource=resource,
        success=success,
        reason=reason,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def require_role_permits(actor: Worker, action: str, resource: str | None = None) -> None:
    """
    Role-only gate used before a resource lookup.

    Staff asking for an invoice get Forbidden whether or not it exists;
    the branch-scope check still runs once the resource's branch is known.
    """
    if role_may_attempt(actor.role, action):
        return
    require_authorized(actor, action, None, resource=resource)


def require_authorized(
    actor: Worker,
    action: str,
    target_branch_id: str | None = None,
    resource: str | None = None,
) -> None:
    """
    Raise ForbiddenError when the policy denies the action.

    The denial is appended to security_events before raising. A failure to
    write the audit row is logged and never changes the Forbidden outcome.
    """
    decision = authorize(actor, action, target_branch_id)
    if decision.allowed:
        return

    try:
        log_security_event(
            worker_id=actor.id,
            event_type="PERMISSION_DENIED",
            success=False,
            action=action,
            branch_id=str(target_branch_id) if target_branch_id is not None else None,
            reason=f"{decision.reason}: {decision.message}",
            resource=resource,
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to record security event for %s", action)

    raise ForbiddenError(decision.message, reason=decision.reason, details={"action": action})
