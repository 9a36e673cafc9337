from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.core.errors import UpstreamFailure
from launchpad.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Users keyed by wallet address. First login creates the row."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, address: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.wallet_address == address).first()
        except SQLAlchemyError as exc:
            logger.error("User lookup failed for %s: %s", address, exc)
            raise UpstreamFailure() from exc

    def get_or_create(self, address: str) -> User:
        now = datetime.now(timezone.utc)
        try:
            user = self.db.query(User).filter(User.wallet_address == address).first()
            if user is None:
                user = User(wallet_address=address, created_at=now, last_login_at=now)
                self.db.add(user)
                logger.info("Created user for %s", address)
            else:
                user.last_login_at = now
            self.db.commit()
            self.db.refresh(user)
            return user
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("User upsert failed for %s: %s", address, exc)
            raise UpstreamFailure() from exc
