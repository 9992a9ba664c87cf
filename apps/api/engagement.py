# apps/api/engagement.py
"""
Likes, dislikes and views for (user, video) pairs.

A user holds at most one VideoLike row per video; its `direction` encodes
like (+1) or dislike (-1). Views are plain event rows and are never
deduplicated.
"""
import logging
import uuid
from typing import Dict, Iterable, NamedTuple, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db import upsert_insert
from errors import NotFoundError, ValidationError
from models import DISLIKE, LIKE, User, Video, VideoLike, View, utcnow

log = logging.getLogger("engagement")


class LikeState(NamedTuple):
    liked: bool
    disliked: bool


NO_LIKE = LikeState(liked=False, disliked=False)


def _require_video(db: Session, video_id: uuid.UUID) -> Video:
    v: Optional[Video] = db.get(Video, video_id)
    if not v:
        raise NotFoundError("video", video_id)
    return v


def toggle_like(db: Session, user: User, video_id: uuid.UUID, direction: int) -> Optional[int]:
    """
    Apply a like (+1) or dislike (-1) press and return the resulting direction.

    Same direction as the stored row: the row is removed (returns None).
    Opposite direction or no row: a single upsert leaves exactly one row
    carrying `direction`.
    """
    if direction not in (LIKE, DISLIKE):
        raise ValidationError("direction must be 1 or -1", field="direction")
    _require_video(db, video_id)

    removed = (
        db.query(VideoLike)
        .filter(
            VideoLike.user_id == user.id,
            VideoLike.video_id == video_id,
            VideoLike.direction == direction,
        )
        .delete(synchronize_session=False)
    )
    if removed:
        db.commit()
        log.debug("user %s cleared reaction on %s", user.id, video_id)
        return None

    insert = upsert_insert(db)
    stmt = (
        insert(VideoLike)
        .values(user_id=user.id, video_id=video_id, direction=direction)
        .on_conflict_do_update(
            index_elements=["user_id", "video_id"],
            set_={"direction": direction, "created_at": utcnow()},
        )
    )
    db.execute(stmt)
    db.commit()
    return direction


def record_view(db: Session, user: Optional[User], video_id: uuid.UUID) -> View:
    _require_video(db, video_id)
    view = View(user_id=user.id if user else None, video_id=video_id)
    db.add(view)
    db.commit()
    return view


def _count_direction(db: Session, video_id: uuid.UUID, direction: int) -> int:
    return (
        db.query(func.count(VideoLike.id))
        .filter(VideoLike.video_id == video_id, VideoLike.direction == direction)
        .scalar()
        or 0
    )


def count_likes(db: Session, video_id: uuid.UUID) -> int:
    return _count_direction(db, video_id, LIKE)


def count_dislikes(db: Session, video_id: uuid.UUID) -> int:
    return _count_direction(db, video_id, DISLIKE)


def count_views(db: Session, video_id: uuid.UUID) -> int:
    return db.query(func.count(View.id)).filter(View.video_id == video_id).scalar() or 0


def view_counts(db: Session, video_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
    ids = list(video_ids)
    if not ids:
        return {}
    rows = (
        db.query(View.video_id, func.count(View.id))
        .filter(View.video_id.in_(ids))
        .group_by(View.video_id)
        .all()
    )
    counts = {vid: 0 for vid in ids}
    counts.update({vid: int(n) for vid, n in rows})
    return counts


def get_direction(db: Session, user: Optional[User], video_id: uuid.UUID) -> LikeState:
    if user is None:
        return NO_LIKE
    row: Optional[VideoLike] = (
        db.query(VideoLike)
        .filter(VideoLike.user_id == user.id, VideoLike.video_id == video_id)
        .first()
    )
    if row is None:
        return NO_LIKE
    return LikeState(liked=row.direction == LIKE, disliked=row.direction == DISLIKE)


def has_viewed(db: Session, user: Optional[User], video_id: uuid.UUID) -> bool:
    if user is None:
        return False
    q = db.query(View.id).filter(View.user_id == user.id, View.video_id == video_id)
    return db.query(q.exists()).scalar()
