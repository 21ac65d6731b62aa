"""
Link routes: allocate short playback codes and resolve them for screens.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_required_user
from ..config import get_settings
from ..database import get_db, utcnow
from ..models.link import Link
from ..models.user import User
from ..services.link_allocator import LinkAllocator
from ..services.playback import resolve_link
from .media import media_to_dict

settings = get_settings()

router = APIRouter(prefix="/api/link", tags=["links"])


class LinkCreate(BaseModel):
    group_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("group_id", "groupId"))


def link_to_dict(link: Link, now=None) -> dict:
    return {
        "link": settings.public_link(link.link_code),
        "code": link.link_code,
        "group_id": link.group_id,
        "created_at": link.created_at.isoformat(),
        "expires_at": link.expires_at.isoformat(),
        "expired": link.is_expired(now),
    }


@router.post("/generate")
def generate_link(
    data: LinkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Allocate a unique 4-digit code for one of the user's groups."""
    link = LinkAllocator(db).allocate(current_user, data.group_id)
    return link_to_dict(link)


@router.get("/list")
def list_links(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    now = utcnow()
    links = db.query(Link).filter(Link.user_id == current_user.id).order_by(Link.id).all()
    return {"links": [link_to_dict(link, now) for link in links]}


@router.delete("/{code}")
def revoke_link(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Delete a link; its code becomes free immediately."""
    LinkAllocator(db).revoke(current_user, code)
    return {"message": "Link revoked"}


@router.get("/{code}/content")
def link_content(code: str, db: Session = Depends(get_db)):
    """Public playback endpoint: the media currently behind a code."""
    link, media = resolve_link(db, code)
    return {
        "code": link.link_code,
        "user_id": link.user_id,
        "group_id": link.group_id,
        "expires_at": link.expires_at.isoformat(),
        "media": [media_to_dict(m) for m in media],
    }
