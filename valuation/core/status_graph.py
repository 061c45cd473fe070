# valuation/core/status_graph.py
from typing import Dict, FrozenSet

from valuation.core.types import ActorRole, ManagerAction, ValuationStatus

_ANY_STATUS: FrozenSet[ValuationStatus] = frozenset(ValuationStatus)

_OPEN_FOR_REVIEW: FrozenSet[ValuationStatus] = frozenset(
    {
        ValuationStatus.pending,
        ValuationStatus.on_progress,
        ValuationStatus.rejected,
        ValuationStatus.rework,
    }
)

# role -> statuses in which that role may edit (and save) a record
EDITABLE_STATUSES: Dict[ActorRole, FrozenSet[ValuationStatus]] = {
    ActorRole.user: frozenset(
        {
            ValuationStatus.pending,
            ValuationStatus.rejected,
            ValuationStatus.rework,
        }
    ),
    ActorRole.manager: _OPEN_FOR_REVIEW,
    ActorRole.admin: _ANY_STATUS,
}

SAVE_RESULT = ValuationStatus.on_progress

APPROVER_ROLES: FrozenSet[ActorRole] = frozenset({ActorRole.manager, ActorRole.admin})

# approved has no outgoing manager transition
APPROVABLE_STATUSES: FrozenSet[ValuationStatus] = _OPEN_FOR_REVIEW

MANAGER_ACTION_RESULTS: Dict[ManagerAction, ValuationStatus] = {
    ManagerAction.approve: ValuationStatus.approved,
    ManagerAction.reject: ValuationStatus.rejected,
    ManagerAction.rework: ValuationStatus.rework,
}
