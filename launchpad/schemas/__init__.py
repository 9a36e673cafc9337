from .auth import (
    LoginRequest,
    LoginResponse,
    NonceResponse,
    SessionOut,
    UserOut,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "NonceResponse",
    "SessionOut",
    "UserOut",
]
