"""
Media routes: upload, list and group reassignment.
"""
import time
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_required_user
from ..config import get_settings
from ..database import get_db
from ..errors import NotFound, StoreError, ValidationError
from ..logging_config import api_logger
from ..models.group import Group
from ..models.media import Media
from ..models.user import User
from .events import emit_media_updated

settings = get_settings()

router = APIRouter(prefix="/api/media", tags=["media"])

UPLOAD_URL_PREFIX = "/uploads"


class MediaUpdate(BaseModel):
    """Only group membership can change after upload."""
    group_id: Optional[int] = None


def media_to_dict(media: Media) -> dict:
    """Convert a Media model to a dictionary response."""
    return {
        "id": media.id,
        "user_id": media.user_id,
        "group_id": media.group_id,
        "type": media.media_type,
        "file_path": media.file_path,
        "url": f"{UPLOAD_URL_PREFIX}/{media.file_path}",
        "name": media.original_name,
        "mime_type": media.mime_type,
        "size": media.size,
        "created_at": media.created_at.isoformat() if media.created_at else None,
    }


def media_type_of(content_type: Optional[str]) -> str:
    """``image/png`` -> ``image``"""
    return (content_type or "application/octet-stream").split("/")[0] or "application"


def stored_name(filename: Optional[str]) -> str:
    base = Path(filename or "upload").name or "upload"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{base}"


def _check_group(db: Session, user: User, group_id: Optional[int]):
    if group_id is None:
        return
    exists = db.query(Group.id).filter(Group.id == group_id, Group.user_id == user.id).first()
    if not exists:
        raise NotFound("Group not found")


@router.post("/upload")
async def upload_media(
    files: Optional[List[UploadFile]] = File(None),
    group_id: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Store a batch of files for the current user, optionally into a group."""
    if not files:
        raise ValidationError("No files uploaded", {"field": "files"})
    _check_group(db, current_user, group_id)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    written = []
    rows = []
    try:
        for upload in files:
            name = stored_name(upload.filename)
            content = await upload.read()
            path = upload_dir / name
            written.append(path)
            path.write_bytes(content)
            rows.append(Media(
                user_id=current_user.id,
                group_id=group_id,
                media_type=media_type_of(upload.content_type),
                file_path=name,
                original_name=upload.filename,
                mime_type=upload.content_type,
                size=len(content),
            ))
        db.add_all(rows)
        db.commit()
    except (SQLAlchemyError, OSError) as e:
        # Disk or store failure part way: keep neither files nor rows
        db.rollback()
        for path in written:
            path.unlink(missing_ok=True)
        api_logger.error("Media upload failed", error=e, user_id=current_user.id)
        raise StoreError("Could not store media") from e

    for row in rows:
        db.refresh(row)

    await emit_media_updated(current_user.id, group_id)
    api_logger.info("Media uploaded", user_id=current_user.id, group_id=group_id, count=len(rows))

    return {
        "message": "Files uploaded successfully",
        "media": [media_to_dict(m) for m in rows],
    }


@router.get("/list")
def list_media(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """All media owned by the current user, in storage order."""
    rows = db.query(Media).filter(Media.user_id == current_user.id).order_by(Media.id).all()
    return {"media": [media_to_dict(m) for m in rows]}


@router.patch("/{media_id}")
async def update_media(
    media_id: int,
    update: MediaUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Move a media item to another of the user's groups (or none)."""
    media = db.query(Media).filter(
        Media.id == media_id,
        Media.user_id == current_user.id
    ).first()
    if not media:
        raise NotFound("Media not found")

    _check_group(db, current_user, update.group_id)
    previous_group = media.group_id
    media.group_id = update.group_id
    db.commit()
    db.refresh(media)

    await emit_media_updated(current_user.id, media.group_id)
    api_logger.info(
        "Media regrouped",
        media_id=media.id,
        from_group=previous_group,
        to_group=media.group_id,
    )
    return media_to_dict(media)
