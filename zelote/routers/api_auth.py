from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ..core.config import settings
from ..core.security import issue_token_pair, refresh_access_token, verify_operator_password
from ..deps.auth import AuthContext, require_ui_or_token
from ..deps.ui_auth import end_session, start_session
from ..schemas.auth import LoginRequest, RefreshRequest, TokenRequest, TokenResponse, WhoAmI

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse, summary="Exchange API key for JWTs")
async def exchange_token(
    payload: TokenRequest,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    configured_key = (settings.API_KEY or "").strip()
    if not configured_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API key authentication is disabled")
    provided = payload.api_key or (x_api_key or "")
    if not provided or not hmac.compare_digest(provided.strip(), configured_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    pair = issue_token_pair(subject="api-client")
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
async def refresh_token(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(**pair.model_dump())


@router.post("/login", response_model=WhoAmI, summary="Operator login with a session cookie")
async def login(payload: LoginRequest, request: Request):
    if not verify_operator_password(payload.username, payload.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    start_session(request, payload.username)
    return WhoAmI(principal=f"ui:{payload.username}", scheme="session")


@router.post("/logout", summary="Clear the operator session")
async def logout(request: Request):
    end_session(request)
    return {"status": "logged_out"}


@router.get("/me", response_model=WhoAmI)
async def whoami(auth: AuthContext = Depends(require_ui_or_token)):
    return WhoAmI(principal=auth.subject, scheme=auth.scheme)
