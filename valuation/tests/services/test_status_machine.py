import itertools
from datetime import datetime, timezone

import pytest

from valuation.core.record import ValuationRecord
from valuation.core.types import ActorRole, ManagerAction, ValuationStatus
from valuation.policies.status_policy import can_approve, can_edit
from valuation.services.status_machine import ValuationStatusMachine, parse_action

from conftest import make_principal

S = ValuationStatus

EDIT_TABLE = {
    ActorRole.user: {S.pending, S.rejected, S.rework},
    ActorRole.manager: {S.pending, S.rejected, S.on_progress, S.rework},
    ActorRole.admin: set(S),
}
REVIEWABLE = {S.pending, S.on_progress, S.rejected, S.rework}


def record_in(status):
    return ValuationRecord(id="r1", client_id="bank-a", created_by="user", status=status)


@pytest.mark.parametrize("role, status", list(itertools.product(ActorRole, ValuationStatus)))
def test_can_edit_matches_table(role, status):
    assert can_edit(role, status) is (status in EDIT_TABLE[role])


@pytest.mark.parametrize("role, status", list(itertools.product(ActorRole, ValuationStatus)))
def test_can_approve_matches_table(role, status):
    expected = role in (ActorRole.manager, ActorRole.admin) and status in REVIEWABLE
    assert can_approve(role, status) is expected


def test_anonymous_and_unknown_never_allowed():
    for status in ValuationStatus:
        assert can_edit(None, status) is False
        assert can_approve(None, status) is False
    assert can_edit("auditor", "pending") is False
    assert can_edit("admin", "archived") is False
    assert can_edit("user", "pending") is True


def test_save_moves_to_on_progress_and_stamps():
    sm = ValuationStatusMachine()
    now = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)
    actor = make_principal(ActorRole.user)

    saved = sm.apply_save(record_in(S.rework), actor, now=now)

    assert saved.status == S.on_progress
    assert saved.last_updated_by == "user"
    assert saved.last_updated_by_role == "user"
    assert saved.last_updated_at == now


def test_user_cannot_save_on_progress_record():
    sm = ValuationStatusMachine()
    with pytest.raises(PermissionError):
        sm.apply_save(record_in(S.on_progress), make_principal(ActorRole.user))


def test_admin_can_save_approved_record():
    sm = ValuationStatusMachine()
    saved = sm.apply_save(record_in(S.approved), make_principal(ActorRole.admin))
    assert saved.status == S.on_progress


def test_rejected_is_editable_by_user_and_approvable_by_admin():
    assert can_edit(ActorRole.user, S.rejected) is True

    sm = ValuationStatusMachine()
    approved = sm.apply_manager_action(record_in(S.rejected), "approve", "Looks good", make_principal(ActorRole.admin))
    assert approved.status == S.approved
    assert approved.manager_feedback == "Looks good"
    assert approved.last_updated_by_role == "admin"


def test_approved_is_terminal_for_review():
    sm = ValuationStatusMachine()
    for action in ManagerAction:
        with pytest.raises(PermissionError):
            sm.apply_manager_action(record_in(S.approved), action, "x", make_principal(ActorRole.manager))


@pytest.mark.parametrize(
    "action, expected",
    [
        (ManagerAction.approve, S.approved),
        (ManagerAction.reject, S.rejected),
        (ManagerAction.rework, S.rework),
    ],
)
def test_manager_action_results(action, expected):
    sm = ValuationStatusMachine()
    out = sm.apply_manager_action(record_in(S.on_progress), action, "  fix photos  ", make_principal(ActorRole.manager))
    assert out.status == expected
    assert out.manager_feedback == "fix photos"


def test_user_cannot_review():
    sm = ValuationStatusMachine()
    with pytest.raises(PermissionError):
        sm.apply_manager_action(record_in(S.pending), "approve", None, make_principal(ActorRole.user))


def test_manager_action_leaves_input_untouched():
    sm = ValuationStatusMachine()
    original = record_in(S.pending)
    sm.apply_manager_action(original, "reject", "blurry", make_principal(ActorRole.manager))
    assert original.status == S.pending
    assert original.manager_feedback == ""


def test_unknown_action():
    with pytest.raises(ValueError):
        parse_action("escalate")
    assert parse_action("rework") == ManagerAction.rework
