# Overview: Role x action policy table.

from ..models.workers import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from .actions import PolicyAction


# Scope rules
ANY_BRANCH = "ANY_BRANCH"  # allowed for whatever branch the resource belongs to
OWN_BRANCH = "OWN_BRANCH"  # allowed only when the resource is in the actor's home branch
GLOBAL = "GLOBAL"          # allowed, no branch involved (cross-branch / admin-only actions)
DENY = "DENY"


_BRANCH_SCOPED = {
    ROLE_ADMIN: ANY_BRANCH,
    ROLE_MANAGER: OWN_BRANCH,
    ROLE_STAFF: DENY,
}

_ADMIN_ONLY = {
    ROLE_ADMIN: GLOBAL,
    ROLE_MANAGER: DENY,
    ROLE_STAFF: DENY,
}


ROLE_POLICY = {
    PolicyAction.CREATE_INVOICE: _BRANCH_SCOPED,
    PolicyAction.UPDATE_INVOICE: _BRANCH_SCOPED,
    PolicyAction.READ_INVOICE: _BRANCH_SCOPED,
    PolicyAction.LIST_ALL_INVOICES: _ADMIN_ONLY,
    PolicyAction.DELETE_INVOICE: _ADMIN_ONLY,
    PolicyAction.READ_WORKER: _BRANCH_SCOPED,
    PolicyAction.LIST_BRANCH_WORKERS: _BRANCH_SCOPED,
    PolicyAction.LIST_ALL_WORKERS: _ADMIN_ONLY,
    PolicyAction.RECONCILE_BRANCH: _ADMIN_ONLY,
}


def rule_for(role: str, action: str) -> str:
    """Scope rule for a role/action pair; unknown roles and actions are DENY."""
    return ROLE_POLICY.get(action, {}).get(role, DENY)


def role_may_attempt(role: str, action: str) -> bool:
    """True when the role can perform the action for at least one branch."""
    return rule_for(role, action) != DENY
