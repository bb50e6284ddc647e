# Overview: Role policy package exports.

from .actions import PolicyAction, ACTION_DEFINITIONS, get_action_definition
from .engine import (
    Decision,
    authorize,
    same_branch,
    REASON_OUT_OF_SCOPE,
    REASON_ROLE_NOT_PERMITTED,
    REASON_UNKNOWN_ACTION,
)
from .rules import ROLE_POLICY, role_may_attempt, rule_for

__all__ = [
    "PolicyAction",
    "ACTION_DEFINITIONS",
    "get_action_definition",
    "Decision",
    "authorize",
    "same_branch",
    "REASON_OUT_OF_SCOPE",
    "REASON_ROLE_NOT_PERMITTED",
    "REASON_UNKNOWN_ACTION",
    "ROLE_POLICY",
    "rule_for",
    "role_may_attempt",
]
