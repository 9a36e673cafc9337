# launchpad/services/nonce_store.py
"""
Login nonce storage

One live challenge per address. Issuing replaces the previous challenge; the first
consume attempt removes it whatever the outcome, so a nonce can never be replayed
or brute-forced. Expiry is checked lazily at consume time.

Two backends share the same rules:
- InMemoryNonceStore: dict + lock, single process
- RedisNonceStore: shared between instances, atomic read-and-delete via MULTI/EXEC
"""
from __future__ import annotations

import json
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

import redis

from launchpad.core.config import Settings
from launchpad.core.errors import NonceExpired, NonceMismatch, NonceNotFound, UpstreamFailure
from launchpad.services.signature import normalize_address

logger = logging.getLogger(__name__)

NONCE_NUM_BYTES = 16  # 32 hex chars
DEFAULT_NONCE_TTL = timedelta(minutes=5)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    return secrets.token_hex(num_bytes)


@dataclass(frozen=True)
class Challenge:
    nonce: str
    expires_at: datetime


class NonceStore:
    """
    Issue/consume rules on top of two primitives subclasses provide:

    _put(key, challenge): store, replacing any previous challenge
    _pop(key): remove and return the challenge in one atomic step
    """

    def __init__(self, ttl: timedelta = DEFAULT_NONCE_TTL, now: Clock = utcnow) -> None:
        self.ttl = ttl
        self.now = now

    def issue(self, address: str) -> str:
        key = normalize_address(address)
        challenge = Challenge(nonce=generate_nonce(), expires_at=self.now() + self.ttl)
        self._put(key, challenge)
        logger.info("Issued login nonce for %s", key)
        return challenge.nonce

    def consume(self, address: str, nonce: str) -> None:
        key = normalize_address(address)

        # popped before any check: expired and mismatched nonces are burned too
        challenge = self._pop(key)
        if challenge is None:
            raise NonceNotFound()

        if self.now() > challenge.expires_at:
            logger.info("Login nonce for %s expired at %s", key, challenge.expires_at.isoformat())
            raise NonceExpired()

        supplied = str(nonce).encode("utf-8", "surrogatepass")
        if not secrets.compare_digest(challenge.nonce.encode(), supplied):
            logger.warning("Login nonce mismatch for %s, challenge burned", key)
            raise NonceMismatch()

    def _put(self, key: str, challenge: Challenge) -> None:
        raise NotImplementedError

    def _pop(self, key: str) -> Optional[Challenge]:
        raise NotImplementedError


class InMemoryNonceStore(NonceStore):
    # expired entries are only purged once the map grows past this,
    # and at most once per purge_interval (defaults to the nonce TTL)
    max_entries = 10_000

    def __init__(self, ttl: timedelta = DEFAULT_NONCE_TTL, now: Clock = utcnow) -> None:
        super().__init__(ttl=ttl, now=now)
        self._challenges: Dict[str, Challenge] = {}
        self._lock = threading.Lock()
        self.purge_interval = ttl
        self._next_purge: Optional[datetime] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def _put(self, key: str, challenge: Challenge) -> None:
        with self._lock:
            self._challenges[key] = challenge
            if len(self._challenges) > self.max_entries:
                now = self.now()
                if self._next_purge is None or now >= self._next_purge:
                    self._purge_expired()
                    self._next_purge = now + self.purge_interval

    def _pop(self, key: str) -> Optional[Challenge]:
        with self._lock:
            return self._challenges.pop(key, None)

    def _purge_expired(self) -> None:
        # caller holds the lock
        now = self.now()
        expired = [k for k, c in self._challenges.items() if now > c.expires_at]
        for k in expired:
            del self._challenges[k]
        if expired:
            logger.debug("Purged %d expired login nonces", len(expired))


class RedisNonceStore(NonceStore):
    key_prefix = "launchpad:nonce:"

    def __init__(
        self,
        client: redis.Redis,
        ttl: timedelta = DEFAULT_NONCE_TTL,
        now: Clock = utcnow,
        grace: timedelta = timedelta(minutes=1),
    ) -> None:
        super().__init__(ttl=ttl, now=now)
        self.client = client
        # keys outlive the nonce a little so a late attempt reports "expired", not "not found"
        self.grace = grace

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisNonceStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def nonce_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _put(self, key: str, challenge: Challenge) -> None:
        value = json.dumps({"nonce": challenge.nonce, "expires_at": challenge.expires_at.isoformat()})
        try:
            self.client.set(self.nonce_key(key), value, ex=int((self.ttl + self.grace).total_seconds()))
        except redis.RedisError as exc:
            logger.error("Failed to store login nonce for %s: %s", key, exc)
            raise UpstreamFailure("Nonce storage unavailable") from exc

    def _pop(self, key: str) -> Optional[Challenge]:
        name = self.nonce_key(key)
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.get(name)
            pipe.delete(name)
            raw, _ = pipe.execute()
        except redis.RedisError as exc:
            logger.error("Failed to read login nonce for %s: %s", key, exc)
            raise UpstreamFailure("Nonce storage unavailable") from exc

        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return Challenge(nonce=data["nonce"], expires_at=datetime.fromisoformat(data["expires_at"]))
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable login nonce for %s", key)
            return None


def build_nonce_store(settings: Settings, now: Clock = utcnow) -> NonceStore:
    ttl = timedelta(seconds=settings.nonce_ttl_seconds)
    backend = settings.nonce_backend.lower()
    if backend == "memory":
        return InMemoryNonceStore(ttl=ttl, now=now)
    if backend == "redis":
        return RedisNonceStore.from_url(settings.redis_url, ttl=ttl, now=now)
    raise ValueError(f"Unknown nonce backend: {settings.nonce_backend}")
