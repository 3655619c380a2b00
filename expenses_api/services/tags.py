from typing import List

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ConflictError, ForbiddenError, NotFoundError


def _name_taken(db: Session, user_id: int, name: str) -> bool:
    return (
        db.query(models.Tag)
        .filter(models.Tag.user_id == user_id, models.Tag.name == name)
        .first()
        is not None
    )


def list_tags(db: Session, user_id: int) -> List[models.Tag]:
    return (
        db.query(models.Tag)
        .filter(models.Tag.user_id == user_id)
        .order_by(models.Tag.id)
        .all()
    )


def get_tag(db: Session, user_id: int, tag_id: int) -> models.Tag:
    tag = db.get(models.Tag, tag_id)
    if tag is None:
        raise NotFoundError("tag")
    if tag.user_id != user_id:
        raise ForbiddenError("Tag belongs to another user.")
    return tag


def create_tag(db: Session, user_id: int, payload: schemas.TagCreate) -> models.Tag:
    if _name_taken(db, user_id, payload.name):
        raise ConflictError(f"Tag '{payload.name}' already exists.")
    if db.get(models.User, user_id) is None:
        raise NotFoundError("user")

    tag = models.Tag(user_id=user_id, name=payload.name, description=payload.description)
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return tag


def update_tag(
    db: Session, user_id: int, tag_id: int, payload: schemas.TagCreate
) -> models.Tag:
    tag = get_tag(db, user_id, tag_id)
    # Renaming onto another existing tag of the same user is not allowed
    if tag.name != payload.name and _name_taken(db, user_id, payload.name):
        raise ConflictError(f"Tag '{payload.name}' already exists.")

    tag.name = payload.name
    tag.description = payload.description
    db.commit()
    db.refresh(tag)
    return tag


def delete_tag(db: Session, user_id: int, tag_id: int) -> None:
    tag = get_tag(db, user_id, tag_id)
    db.delete(tag)
    db.commit()
