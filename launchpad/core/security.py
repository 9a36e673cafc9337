"""
Session tokens

After a wallet proves ownership of its address, SessionIssuer mints an HS256 JWT
carrying the address. Tokens are stateless: validity depends only on the MAC, the
claim shape and the expiry.

Claims:
- address: lower-case 0x address
- iat: issued at (unix seconds)
- exp: iat + session TTL (24h by default)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import jwt

from launchpad.core.config import Settings
from launchpad.core.errors import BadSignature, MalformedToken, TokenExpired

logger = logging.getLogger(__name__)

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
DEFAULT_SESSION_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class SessionClaims:
    address: str
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_SESSION_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("session signing secret is not configured")
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"unsupported session token algorithm: {algorithm}")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self.now = now

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "SessionIssuer":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_alg,
            ttl=timedelta(seconds=settings.session_ttl_seconds),
            **kwargs,
        )

    def mint(self, address: str) -> str:
        """
        Create a session token for an authenticated address.

        Args:
            address: canonical (lower-case) wallet address

        Returns:
            Token for the Authorization: Bearer <token> header
        """
        if not address:
            raise ValueError("address is required")

        issued_at = int(self.now().timestamp())
        payload: Dict[str, Any] = {
            "address": address,
            "iat": issued_at,
            "exp": issued_at + int(self.ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> SessionClaims:
        """
        Check a session token and return its claims.

        Raises:
            MalformedToken: not a JWT, or claims missing / wrong type
            BadSignature: MAC mismatch, or a header alg other than ours
            TokenExpired: now >= exp
        """
        if not token:
            raise MalformedToken("Missing token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                # expiry is checked below against our own clock
                options={"verify_exp": False, "verify_iat": False, "require": ["address", "iat", "exp"]},
            )
        except jwt.InvalidAlgorithmError:
            logger.warning("Rejected session token with unexpected algorithm")
            raise BadSignature()
        except jwt.InvalidSignatureError:
            raise BadSignature()
        except jwt.InvalidTokenError:
            raise MalformedToken()

        address = payload["address"]
        iat, exp = payload["iat"], payload["exp"]
        if not isinstance(address, str) or not address:
            raise MalformedToken("Invalid token payload")
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (iat, exp)):
            raise MalformedToken("Invalid token payload")

        claims = SessionClaims(
            address=address,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
        if self.now() >= claims.expires_at:
            raise TokenExpired()
        return claims
