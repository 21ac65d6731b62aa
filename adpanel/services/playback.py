"""
Resolve a public link code to the media it currently plays.
"""
import re
from typing import List, Tuple

from sqlalchemy.orm import Session

from ..database import utcnow
from ..errors import Expired, NotFound
from ..models.link import Link
from ..models.media import Media

CODE_PATTERN = re.compile(r"^[0-9]{4}$")


def resolve_link(db: Session, code: str) -> Tuple[Link, List[Media]]:
    """Return the live link for ``code`` and its group's media in storage order.

    Raises NotFound for unknown or malformed codes and Expired once the
    link's expiry has passed. Nothing is cached.
    """
    if not CODE_PATTERN.match(code or ""):
        raise NotFound("Link not found")

    link = db.query(Link).filter(Link.link_code == code).first()
    if not link:
        raise NotFound("Link not found")
    if link.is_expired(utcnow()):
        raise Expired("Link expired")

    media = (
        db.query(Media)
        .filter(Media.group_id == link.group_id, Media.user_id == link.user_id)
        .order_by(Media.id)
        .all()
    )
    return link, media
