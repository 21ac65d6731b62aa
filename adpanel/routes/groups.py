"""
Group routes: named media collections that links point at.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from pydantic import BaseModel, Field

from ..database import get_db
from ..errors import NotFound
from ..models.group import Group
from ..models.user import User
from ..auth import get_required_user
from .media import media_to_dict

router = APIRouter(prefix="/api/groups", tags=["groups"])


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


def group_to_dict(group: Group) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "created_at": group.created_at.isoformat() if group.created_at else None,
    }


def get_owned_group(db: Session, user: User, group_id: int) -> Group:
    group = db.query(Group).filter(Group.id == group_id, Group.user_id == user.id).first()
    if not group:
        raise NotFound("Group not found")
    return group


@router.post("", status_code=status.HTTP_201_CREATED)
def create_group(
    data: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    group = Group(user_id=current_user.id, name=data.name.strip())
    db.add(group)
    db.commit()
    db.refresh(group)
    return group_to_dict(group)


@router.get("", response_model=List[dict])
def list_groups(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    groups = db.query(Group).filter(Group.user_id == current_user.id).order_by(Group.id).all()
    return [group_to_dict(g) for g in groups]


@router.get("/{group_id}")
def get_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """A group with its media, in storage order."""
    group = get_owned_group(db, current_user, group_id)
    return {
        **group_to_dict(group),
        "media": [media_to_dict(m) for m in sorted(group.media, key=lambda m: m.id)],
    }
