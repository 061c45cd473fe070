#valuation/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from valuation.core.auth_deps import get_current_principal
from valuation.core.security import create_access_token
from valuation.db.session import get_db
from valuation.policies.rbac import Principal
from valuation.schemas.auth import LoginRequest, MeResponse, TokenResponse
from valuation.services.auth_service import authenticate

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
    principal = authenticate(db, req.clientId, req.username, req.password)
    if not principal:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    token = create_access_token(principal)
    return TokenResponse(access_token=token)


@router.get("/me", response_model=MeResponse)
def get_me(principal: Principal = Depends(get_current_principal)):
    return MeResponse(
        username=principal.username,
        clientId=principal.client_id,
        role=principal.role.value,
        displayName=principal.display_name,
    )
