# Overview: Pure authorization decision over (actor role, action, target branch).

"""
Role policy engine.

authorize() never touches the database: it reads `role` and `branch_id` from
the actor and compares branch ids as opaque strings. Callers that need an
exception plus an audit trail go through permission_service.require_authorized.
"""

from __future__ import annotations

from dataclasses import dataclass

from .actions import get_action_definition
from .rules import ANY_BRANCH, GLOBAL, OWN_BRANCH, rule_for


# Deny reason codes
REASON_UNKNOWN_ACTION = "UnknownAction"
REASON_ROLE_NOT_PERMITTED = "RoleNotPermitted"
REASON_OUT_OF_SCOPE = "OutOfScope"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None
    message: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.allowed


def same_branch(left, right) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def authorize(actor, action: str, target_branch_id=None) -> Decision:
    definition = get_action_definition(action)
    if definition is None:
        return Decision.deny(REASON_UNKNOWN_ACTION, f"Unknown action: {action}")

    label = definition["name"].lower()
    rule = rule_for(actor.role, action)

    if rule in (GLOBAL, ANY_BRANCH):
        return Decision.allow()

    if rule == OWN_BRANCH:
        if same_branch(actor.branch_id, target_branch_id):
            return Decision.allow()
        return Decision.deny(
            REASON_OUT_OF_SCOPE,
            f"You are not authorized to {label} outside your own branch",
        )

    return Decision.deny(
        REASON_ROLE_NOT_PERMITTED,
        f"Role {actor.role} is not authorized to {label}",
    )
