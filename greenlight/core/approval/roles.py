"""Greenlight approver roles and decisions.

Role lifecycle (per project):

    ┌──────────────┐
    │ NOT_REQUIRED │ ← No approver email assigned
    └──────────────┘

    ┌──────────┐  reject  ┌──────────┐
    │ PENDING  │─────────►│ REJECTED │
    └────┬─────┘◄─────────┴────┬─────┘
         │        (approver may decide again)
         │ approve             │ approve
    ┌────▼─────┐               │
    │ APPROVED │◄──────────────┘
    └──────────┘

APPROVED is terminal: a role is never moved back out of it.
"""

from enum import Enum
from typing import Dict, NamedTuple, Union


class ApproverRole(str, Enum):
    """Stakeholders that may be asked to sign off on a project."""

    PRODUCER = "producer"
    LEGAL = "legal"
    FINANCE = "finance"
    EXECUTIVE = "executive"
    CLIENT = "client"


class Decision(str, Enum):
    """Outcome submitted by an approver."""

    APPROVE = "approve"
    REJECT = "reject"


class RoleStatus(str, Enum):
    """Derived display status of a single role."""

    NOT_REQUIRED = "not_required"  # No approver assigned
    PENDING = "pending"            # Assigned, no decision yet
    APPROVED = "approved"          # Signed off (terminal)
    REJECTED = "rejected"          # Last decision was a rejection


class RoleDefinition(NamedTuple):
    """Static description of an approver role."""
    role: ApproverRole
    label: str
    title: str
    assignment_field: str  # Contact field in the host project record


ROLE_DEFINITIONS: Dict[ApproverRole, RoleDefinition] = {
    ApproverRole.PRODUCER: RoleDefinition(
        ApproverRole.PRODUCER, "Producer", "Producer Approved", "producerEmail",
    ),
    ApproverRole.LEGAL: RoleDefinition(
        ApproverRole.LEGAL, "Legal", "Legal Reviewed & Approved", "legalContactEmail",
    ),
    ApproverRole.FINANCE: RoleDefinition(
        ApproverRole.FINANCE, "Finance", "Budget Approved by Finance", "financeContactEmail",
    ),
    ApproverRole.EXECUTIVE: RoleDefinition(
        ApproverRole.EXECUTIVE, "Executive", "Executive Sponsor Approved", "executiveSponsorEmail",
    ),
    ApproverRole.CLIENT: RoleDefinition(
        ApproverRole.CLIENT, "Client", "Client Approved", "clientContactEmail",
    ),
}

_LABEL_LOOKUP: Dict[str, ApproverRole] = {
    definition.label.lower(): role for role, definition in ROLE_DEFINITIONS.items()
}


def get_role_definition(role: ApproverRole) -> RoleDefinition:
    """Get the definition for a role."""
    return ROLE_DEFINITIONS[role]


def role_label(role: ApproverRole) -> str:
    """Human readable label used in audit records."""
    return ROLE_DEFINITIONS[role].label


def parse_role(value: Union[ApproverRole, str]) -> ApproverRole:
    """
    Resolve a role from an enum member, its value or its label.

    Raises:
        ValueError: If the value does not name a known role
    """
    if isinstance(value, ApproverRole):
        return value

    key = str(value).strip().lower()
    try:
        return ApproverRole(key)
    except ValueError:
        pass

    if key in _LABEL_LOOKUP:
        return _LABEL_LOOKUP[key]

    raise ValueError(f"Unknown approver role: {value!r}")
