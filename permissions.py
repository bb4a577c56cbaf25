"""
Role and field permissions for complaints.

Which role may read or write which complaint field is a table, not control
flow: ``FIELD_ACCESS`` maps ``(role, field)`` to an ``Access`` pair and the
complaint service only consults it. Record-level rules (who may see or
modify a given complaint) and status transitions are separate predicates.
"""
from typing import NamedTuple

from models import COMPLAINT_STATUSES

ROLES = ("user", "supportStaff", "admin")

FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "assignedTo",
    "imageUrl",
    "createdBy",
    "timeline",
    "feedback",
)

FEEDBACK_STATUSES = frozenset({"resolved", "closed"})


class Access(NamedTuple):
    readable: bool
    writable: bool


RO = Access(readable=True, writable=False)
RW = Access(readable=True, writable=True)
NONE = Access(readable=False, writable=False)

_MATRIX = {
    "admin": {
        "title": RO,
        "description": RO,
        "status": RW,
        "priority": RW,
        "assignedTo": RW,
        "imageUrl": RO,
        "createdBy": RO,
        "timeline": RO,
        "feedback": RO,
    },
    "supportStaff": {
        "title": RO,
        "description": RO,
        "status": RW,
        "priority": RW,
        "assignedTo": RO,
        "imageUrl": RO,
        "createdBy": RO,
        "timeline": RO,
        "feedback": RO,
    },
    "user": {
        "title": RW,
        "description": RW,
        # Any status value; the UI only offers resolved/closed.
        "status": RW,
        "priority": RO,
        "assignedTo": RO,
        "imageUrl": RO,
        "createdBy": RO,
        "timeline": RO,
        "feedback": RO,
    },
}

FIELD_ACCESS = {
    (role, field): access
    for role, fields in _MATRIX.items()
    for field, access in fields.items()
}

# Fields shown per complaint in the list view, beyond id and createdAt.
LIST_PROJECTIONS = {
    "admin": ("title", "description", "status", "priority", "createdBy", "assignedTo"),
    "supportStaff": ("title", "description", "status", "priority", "createdBy"),
    "user": ("title", "description", "status"),
}

# Order in which writable fields are applied on a full update. The first
# material change supplies the generated timeline comment.
UPDATE_ORDER = ("assignedTo", "title", "description", "status", "priority")


def access_for(role: str, field: str) -> Access:
    return FIELD_ACCESS.get((role, field), NONE)


def can_read(role: str, field: str) -> bool:
    return access_for(role, field).readable


def can_write(role: str, field: str) -> bool:
    return access_for(role, field).writable


def writable_fields(role: str) -> tuple:
    return tuple(f for f in UPDATE_ORDER if can_write(role, f))


def list_projection(role: str) -> tuple:
    return LIST_PROJECTIONS.get(role, ())


def is_creator(user_id, complaint) -> bool:
    return complaint.created_by == user_id


def is_assignee(user_id, complaint) -> bool:
    return complaint.assigned_to is not None and complaint.assigned_to == user_id


def can_view(role: str, user_id, complaint) -> bool:
    return role == "admin" or is_creator(user_id, complaint) or is_assignee(user_id, complaint)


def can_modify(role: str, user_id, complaint) -> bool:
    if role == "admin":
        return True
    if role == "supportStaff":
        return is_assignee(user_id, complaint)
    if role == "user":
        return is_creator(user_id, complaint)
    return False


def is_valid_status(status) -> bool:
    return status in COMPLAINT_STATUSES


def is_valid_transition(current: str, target: str, require_change: bool = False) -> bool:
    """Any known status may follow any other; ``require_change`` rejects no-ops."""
    if not is_valid_status(target):
        return False
    if require_change and current == target:
        return False
    return True


def can_leave_feedback(status: str) -> bool:
    return status in FEEDBACK_STATUSES
