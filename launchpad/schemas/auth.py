from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NonceResponse(BaseModel):
    nonce: str


class LoginRequest(BaseModel):
    address: str = Field(..., description="Wallet address (0x + 40 hex)")
    nonce: str = Field(..., description="Nonce returned by /auth/nonce")
    signature: str = Field(..., description="personal_sign signature, 65 bytes hex")


class LoginResponse(BaseModel):
    token: str
    address: str


class SessionOut(BaseModel):
    address: str
    issued_at: datetime
    expires_at: datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wallet_address: str
    created_at: datetime
    last_login_at: datetime | None = None
