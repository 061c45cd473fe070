# valuation/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from valuation.core.security import decode_token
from valuation.core.types import ActorRole
from valuation.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid
    - username, role, client_id are present
    - role is a valid ActorRole
    """

    try:
        payload = decode_token(creds.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    username = payload.get("username")
    role = payload.get("role")
    client_id = payload.get("client_id")
    display_name = payload.get("display_name") or username

    if not username or not role or not client_id:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        role_enum = ActorRole(role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    principal = Principal(
        username=str(username),
        client_id=str(client_id),
        role=role_enum,
        display_name=str(display_name),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
