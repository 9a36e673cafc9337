"""
FastAPI dependencies for wallet auth.

Protected routes depend on get_current_address:

    @router.get("/protected")
    def protected(address: str = Depends(get_current_address)):
        ...

The verified address is also left on request.state.address for anything
downstream of the route (services, logging).
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from launchpad.core.errors import AuthError
from launchpad.core.security import SessionClaims
from launchpad.db.session import get_db
from launchpad.services.auth import AuthService
from launchpad.services.users import UserRepository


def http_error(exc: AuthError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    # nonce store and issuer are process-wide; the user repository is per request
    return AuthService(
        nonces=request.app.state.nonce_store,
        sessions=request.app.state.session_issuer,
        users=UserRepository(db),
    )


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Accept "Bearer <token>" (any case) or a bare token."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
        )

    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    else:
        token = authorization
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    return token


def get_session_claims(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    auth: AuthService = Depends(get_auth_service),
) -> SessionClaims:
    token = extract_bearer_token(authorization)
    try:
        return auth.verify_token(token)
    except AuthError as e:
        raise http_error(e)


def get_current_address(request: Request, claims: SessionClaims = Depends(get_session_claims)) -> str:
    request.state.address = claims.address
    return claims.address
