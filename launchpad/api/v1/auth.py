from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from launchpad.core.deps import get_auth_service, get_current_address, get_session_claims, http_error
from launchpad.core.errors import AuthError
from launchpad.core.security import SessionClaims
from launchpad.db.session import get_db
from launchpad.schemas.auth import LoginRequest, LoginResponse, NonceResponse, SessionOut, UserOut
from launchpad.services.auth import AuthService
from launchpad.services.users import UserRepository

router = APIRouter()


@router.get("/auth/nonce", response_model=NonceResponse)
def auth_nonce(address: str = "", auth: AuthService = Depends(get_auth_service)):
    try:
        nonce = auth.generate_nonce(address)
    except AuthError as e:
        raise http_error(e)
    return NonceResponse(nonce=nonce)


@router.post("/auth/login", response_model=LoginResponse)
def auth_login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.login(payload.address, payload.nonce, payload.signature)
    except AuthError as e:
        raise http_error(e)
    return LoginResponse(token=result.token, address=result.address)


@router.post("/auth/verify", response_model=SessionOut)
def auth_verify(claims: SessionClaims = Depends(get_session_claims)):
    return SessionOut(address=claims.address, issued_at=claims.issued_at, expires_at=claims.expires_at)


@router.get("/auth/me", response_model=UserOut, dependencies=[Depends(get_current_address)])
def auth_me(request: Request, db: Session = Depends(get_db)):
    try:
        user = UserRepository(db).get(request.state.address)
    except AuthError as e:
        raise http_error(e)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
