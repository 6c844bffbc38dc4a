"""Chat participant lookup, keyed by client network address."""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agentsquare.db.models import User

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "👤"


class UserService:
    """Resolves (and lazily creates) the user behind a network address."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_ip(self, ip: str) -> User | None:
        return self._db.query(User).filter(User.ip == ip).first()

    async def get_or_create(
        self, ip: str, nickname_for: Callable[[str], Awaitable[str]]
    ) -> User:
        """Return the user for ``ip``, creating it on first contact.

        The nickname is derived once, at creation, via ``nickname_for``.
        A concurrent first request for the same address loses the unique
        constraint race and re-reads the winner's row.
        """
        user = self.find_by_ip(ip)
        if user is not None:
            return user

        nickname = await nickname_for(ip)
        user = User(ip=ip, nickname=nickname, avatar=DEFAULT_AVATAR)
        self._db.add(user)
        try:
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            existing = self.find_by_ip(ip)
            if existing is None:
                raise
            return existing
        logger.info("Created user %s (%s)", user.id, nickname)
        return user
