"""
Wallet login flow

    generate_nonce(address)            NoChallenge -> ChallengeIssued
    login(address, nonce, signature)   ChallengeIssued -> Authenticated | Rejected
    verify_token(token)                session check for later requests

The nonce is consumed before the signature is checked, so a challenge is spent
by the first attempt even when verification fails.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from launchpad.core.errors import InvalidSignature, UpstreamFailure
from launchpad.core.security import SessionClaims, SessionIssuer
from launchpad.services.nonce_store import NonceStore
from launchpad.services.signature import login_message, normalize_address, verify_signature

logger = logging.getLogger(__name__)


class UserDirectory(Protocol):
    def get_or_create(self, address: str) -> Any: ...


@dataclass(frozen=True)
class LoginResult:
    token: str
    address: str


class AuthService:
    def __init__(self, nonces: NonceStore, sessions: SessionIssuer, users: UserDirectory):
        self.nonces = nonces
        self.sessions = sessions
        self.users = users

    def generate_nonce(self, address: str) -> str:
        return self.nonces.issue(address)

    def login(self, address: str, nonce: str, signature: str) -> LoginResult:
        canonical = normalize_address(address)

        # raises NonceNotFound / NonceExpired / NonceMismatch
        self.nonces.consume(canonical, nonce)

        if not verify_signature(canonical, login_message(nonce), signature):
            logger.warning("Rejected login for %s: signature does not match address", canonical)
            raise InvalidSignature()

        try:
            self.users.get_or_create(canonical)
        except UpstreamFailure:
            raise
        except Exception as exc:
            logger.exception("User collaborator failed for %s", canonical)
            raise UpstreamFailure() from exc

        token = self.sessions.mint(canonical)
        logger.info("Authenticated %s", canonical)
        return LoginResult(token=token, address=canonical)

    def verify_token(self, token: str) -> SessionClaims:
        return self.sessions.validate(token)
