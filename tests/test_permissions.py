import uuid
from types import SimpleNamespace

import pytest

import permissions


def complaint(created_by, assigned_to=None, status="open"):
    return SimpleNamespace(created_by=created_by, assigned_to=assigned_to, status=status)


def test_every_role_has_an_entry_for_every_field():
    for role in permissions.ROLES:
        for field in permissions.FIELDS:
            assert (role, field) in permissions.FIELD_ACCESS


@pytest.mark.parametrize(
    "role, expected",
    [
        ("admin", ("assignedTo", "status", "priority")),
        ("supportStaff", ("status", "priority")),
        ("user", ("title", "description", "status")),
    ],
)
def test_writable_fields_per_role(role, expected):
    assert permissions.writable_fields(role) == expected


def test_unknown_role_can_do_nothing():
    assert permissions.writable_fields("guest") == ()
    assert not permissions.can_read("guest", "title")
    assert permissions.list_projection("guest") == ()


def test_list_projection_hides_priority_and_assignee_from_users():
    user_fields = permissions.list_projection("user")
    assert "priority" not in user_fields
    assert "assignedTo" not in user_fields
    assert "assignedTo" not in permissions.list_projection("supportStaff")
    assert "assignedTo" in permissions.list_projection("admin")


def test_view_and_modify_rules():
    creator, staff, other = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    c = complaint(creator, assigned_to=staff)

    assert permissions.can_view("user", creator, c)
    assert permissions.can_view("supportStaff", staff, c)
    assert permissions.can_view("admin", other, c)
    assert not permissions.can_view("user", other, c)
    assert not permissions.can_view("supportStaff", other, c)

    assert permissions.can_modify("admin", other, c)
    assert permissions.can_modify("supportStaff", staff, c)
    assert not permissions.can_modify("supportStaff", other, c)
    assert permissions.can_modify("user", creator, c)
    assert not permissions.can_modify("user", other, c)
    assert not permissions.can_modify("guest", creator, c)


def test_unassigned_complaint_has_no_assignee():
    c = complaint(uuid.uuid4())
    assert not permissions.is_assignee(None, c)


def test_transitions():
    assert permissions.is_valid_transition("closed", "open")
    assert permissions.is_valid_transition("open", "open")
    assert not permissions.is_valid_transition("open", "open", require_change=True)
    assert not permissions.is_valid_transition("open", "done")


@pytest.mark.parametrize("status, allowed", [
    ("open", False),
    ("assigned", False),
    ("inProgress", False),
    ("resolved", True),
    ("closed", True),
])
def test_feedback_eligibility(status, allowed):
    assert permissions.can_leave_feedback(status) is allowed
