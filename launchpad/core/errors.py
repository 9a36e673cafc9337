"""
Authentication errors

Every failure in the wallet login flow is one of these. Each carries the HTTP status
and the client-facing message, so routes can turn them into HTTPException directly.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base class for recoverable authentication failures."""

    status_code: int = 401
    detail: str = "Authentication failed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidAddress(AuthError):
    status_code = 400
    detail = "Invalid ethereum address"


class NonceNotFound(AuthError):
    detail = "Nonce not found"


class NonceExpired(AuthError):
    detail = "Nonce expired"


class NonceMismatch(AuthError):
    detail = "Invalid nonce"


class InvalidSignature(AuthError):
    detail = "Invalid signature"


class MalformedToken(AuthError):
    detail = "Malformed token"


class BadSignature(AuthError):
    detail = "Invalid token signature"


class TokenExpired(AuthError):
    detail = "Token expired"


class UpstreamFailure(AuthError):
    status_code = 503
    detail = "User storage unavailable"
