"""Pure-function access policy.

Authorization is a stateless function: (principal, resource, action) ->
AccessDecision. The relationship between the caller and the task (admin,
creator, assignee, none) is worked out once, and one table decides which
relationships may perform which action:

    action   admin  creator  assignee  other
    read       y       y        y        n
    write      y       y        n        n

Keeping the table in one place is what guarantees that read access is
broader than write access everywhere it is checked.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Action(str, Enum):
    READ = "read"
    WRITE = "write"


class Relationship(str, Enum):
    ADMIN = "admin"
    CREATOR = "creator"
    ASSIGNEE = "assignee"
    NONE = "none"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    user_id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class OwnedResource(Protocol):
    created_by_id: uuid.UUID
    assigned_to_id: uuid.UUID


@dataclass
class AccessDecision:
    """Outcome of a policy evaluation."""

    allowed: bool
    action: Action
    relationship: Relationship
    message: str
    details: dict[str, Any] = field(default_factory=dict)


POLICY: dict[Action, frozenset[Relationship]] = {
    Action.READ: frozenset({Relationship.ADMIN, Relationship.CREATOR, Relationship.ASSIGNEE}),
    Action.WRITE: frozenset({Relationship.ADMIN, Relationship.CREATOR}),
}

DENIAL_MESSAGES = {
    Action.READ: "Not authorized to access this task",
    Action.WRITE: "Not authorized to update this task",
}


def relationship_to(principal: Principal, resource: OwnedResource) -> Relationship:
    """Strongest relationship the principal holds to the resource."""
    if principal.is_admin:
        return Relationship.ADMIN
    if resource.created_by_id == principal.user_id:
        return Relationship.CREATOR
    if resource.assigned_to_id == principal.user_id:
        return Relationship.ASSIGNEE
    return Relationship.NONE


def evaluate_task_access(
    principal: Principal,
    resource: OwnedResource,
    action: Action,
) -> AccessDecision:
    """Decide whether principal may perform action on resource.

    Pure function: no database, no side effects.
    """
    relationship = relationship_to(principal, resource)
    allowed = relationship in POLICY[action]
    return AccessDecision(
        allowed=allowed,
        action=action,
        relationship=relationship,
        message="Allowed" if allowed else DENIAL_MESSAGES[action],
        details={"role": principal.role.value},
    )


def check_role(principal: Principal, required: Role) -> AccessDecision:
    """Role gate used by admin-only endpoints."""
    allowed = principal.role == required
    return AccessDecision(
        allowed=allowed,
        action=Action.WRITE,
        relationship=Relationship.ADMIN if principal.is_admin else Relationship.NONE,
        message=(
            "Allowed"
            if allowed
            else f"User role {principal.role.value} is not authorized to access this route"
        ),
        details={"required": required.value},
    )
