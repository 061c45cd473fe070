# valuation/api/v1/options.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from valuation.core.auth_deps import get_current_principal
from valuation.core.types import OptionCategory
from valuation.db.session import get_db
from valuation.policies.rbac import ACTION_MANAGE_OPTIONS, Principal, require_action
from valuation.schemas.options import OptionCreateRequest, OptionsResponse
from valuation.services.audit_service import AuditAction, audit_event
from valuation.services.options_service import OptionsProvider

router = APIRouter(prefix="/options", tags=["options"])


@router.get("/{category}", response_model=OptionsResponse)
async def get_options(
    category: OptionCategory,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    values = OptionsProvider().get_options(db, client_id=principal.client_id, category=category)
    return OptionsResponse(category=category, values=values)


@router.post("/{category}", response_model=OptionsResponse)
async def add_option(
    category: OptionCategory,
    req: OptionCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        require_action(principal, ACTION_MANAGE_OPTIONS)
        values = OptionsProvider().add_option(
            db,
            client_id=principal.client_id,
            category=category,
            value=req.value,
            created_by=principal.username,
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    audit_event(
        db,
        request=request,
        principal=principal,
        record_id=None,
        action=AuditAction.OPTION_ADDED,
        payload_summary={"category": category.value, "value": req.value.strip()},
    )
    return OptionsResponse(category=category, values=values)
