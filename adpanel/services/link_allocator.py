"""
Short numeric link allocation.

Codes are drawn uniformly from 1000-9999. The unique constraint on
``links.link_code`` is what closes the race between two concurrent
allocators: the loser of an insert race rolls back and draws again, and the
whole loop is bounded so a saturated code space fails instead of spinning.
"""
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import utcnow
from ..errors import CapacityExhausted, NotFound, StoreError, ValidationError
from ..logging_config import db_logger
from ..models.group import Group
from ..models.link import Link
from ..models.user import User

CODE_MIN = 1000
CODE_MAX = 9999

settings = get_settings()


def draw_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


class LinkAllocator:
    """Allocates links for a user's groups."""

    def __init__(self, db: Session, max_attempts: Optional[int] = None, ttl: Optional[timedelta] = None):
        self.db = db
        self.max_attempts = max_attempts or settings.link_code_max_attempts
        self.ttl = ttl or timedelta(days=settings.link_ttl_days)

    def allocate(self, user: User, group_id: Optional[int]) -> Link:
        if not group_id:
            raise ValidationError("Group ID is required", {"field": "group_id"})

        try:
            group = self.db.query(Group).filter(Group.id == group_id, Group.user_id == user.id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error("Group lookup failed", error=e, group_id=group_id)
            raise StoreError("Could not read group") from e
        if not group:
            raise NotFound("Group not found")

        for attempt in range(1, self.max_attempts + 1):
            code = draw_code()
            link = self._try_insert(user, group, code)
            if link is not None:
                db_logger.info("Link allocated", code=code, group_id=group.id, attempts=attempt)
                return link

        # Random draws keep missing in a nearly full space; look for a free code directly
        code = self._free_code()
        if code is not None:
            link = self._try_insert(user, group, code)
            if link is not None:
                db_logger.info("Link allocated after sweep", code=code, group_id=group.id)
                return link

        db_logger.warning("Link code space exhausted", attempts=self.max_attempts, user_id=user.id)
        raise CapacityExhausted("No free link codes available, try again later")

    def _free_code(self) -> Optional[str]:
        """A random code not held by a live link, or None when every code is taken."""
        now = utcnow()
        try:
            live = {code for (code,) in self.db.query(Link.link_code).filter(Link.expires_at > now)}
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error("Link sweep failed", error=e)
            raise StoreError("Could not read links") from e
        free = [str(n) for n in range(CODE_MIN, CODE_MAX + 1) if str(n) not in live]
        return secrets.choice(free) if free else None

    def _try_insert(self, user: User, group: Group, code: str) -> Optional[Link]:
        """Insert a link for ``code``; None when the code is held by a live link."""
        now = utcnow()
        try:
            holder = self.db.query(Link).filter(Link.link_code == code).first()
            if holder is not None:
                if not holder.is_expired(now):
                    return None
                # Evict the stale holder first so the insert sees a free code
                self.db.delete(holder)
                self.db.flush()

            link = Link(
                user_id=user.id,
                group_id=group.id,
                link_code=code,
                created_at=now,
                expires_at=now + self.ttl,
            )
            self.db.add(link)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            db_logger.info("Link code taken concurrently, redrawing", code=code)
            return None
        except SQLAlchemyError as e:
            self.db.rollback()
            db_logger.error("Link insert failed", error=e, code=code)
            raise StoreError("Could not store link") from e

        self.db.refresh(link)
        return link

    def revoke(self, user: User, code: str) -> None:
        link = self.db.query(Link).filter(Link.link_code == code, Link.user_id == user.id).first()
        if not link:
            raise NotFound("Link not found")
        self.db.delete(link)
        self.db.commit()
