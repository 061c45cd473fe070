# valuation/services/status_machine.py
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Union

from valuation.core.record import ValuationRecord
from valuation.core.status_graph import MANAGER_ACTION_RESULTS, SAVE_RESULT
from valuation.core.types import ManagerAction
from valuation.policies.rbac import Principal
from valuation.policies.status_policy import require_approve, require_edit


def _now():
    return datetime.now(timezone.utc)


def parse_action(raw: Union[ManagerAction, str]) -> ManagerAction:
    try:
        return ManagerAction(raw)
    except ValueError:
        raise ValueError(f"Unknown manager action: {raw}")


class ValuationStatusMachine:
    """
    Status lifecycle of a valuation record.

    pending ──save──▶ on-progress ──approve/reject/rework──▶ approved | rejected | rework
    rejected / rework ──save──▶ on-progress

    Guarantees:
    - Pure: takes a record, returns a new one; never persists
    - Raises PermissionError when the actor may not act on the current status
    - Audit metadata is stamped only here
    """

    def apply_save(
        self,
        record: ValuationRecord,
        actor: Principal,
        *,
        now: Optional[datetime] = None,
    ) -> ValuationRecord:
        require_edit(actor.role, record.status)
        return self._stamp(record, actor, now, status=SAVE_RESULT)

    def apply_manager_action(
        self,
        record: ValuationRecord,
        action: Union[ManagerAction, str],
        feedback: Optional[str],
        actor: Principal,
        *,
        now: Optional[datetime] = None,
    ) -> ValuationRecord:
        action = parse_action(action)
        require_approve(actor.role, record.status)

        updated = self._stamp(record, actor, now, status=MANAGER_ACTION_RESULTS[action])
        return replace(updated, manager_feedback=(feedback or "").strip())

    def _stamp(self, record: ValuationRecord, actor: Principal, now, *, status) -> ValuationRecord:
        return replace(
            record,
            status=status,
            last_updated_by=actor.username,
            last_updated_by_role=actor.role.value,
            last_updated_at=now or _now(),
        )
