# apps/api/feeds.py
import uuid
from typing import List

from sqlalchemy.orm import Session, joinedload

import subscriptions
from catalog import channels_out, with_views
from config import settings
from models import LIKE, User, Video, VideoLike, View
from schemas import ChannelOut, VideoOut


def _newest_videos(db: Session):
    return (
        db.query(Video)
        .options(joinedload(Video.user))
        .order_by(Video.created_at.desc())
    )


def recommended(db: Session) -> List[VideoOut]:
    return with_views(db, _newest_videos(db).all())


def trending(db: Session) -> List[VideoOut]:
    videos = with_views(db, _newest_videos(db).all())
    # sorted() is stable: equal view counts keep newest-first order
    return sorted(videos, key=lambda v: v.views, reverse=True)


def feed_for(db: Session, subscriber: User) -> List[VideoOut]:
    following = subscriptions.subscriptions_of(db, subscriber.id)
    if not following:
        return []
    videos = _newest_videos(db).filter(Video.user_id.in_(following)).all()
    return with_views(db, videos)


def _videos_in_relation_order(db: Session, video_ids: List[uuid.UUID]) -> List[VideoOut]:
    ordered_ids: List[uuid.UUID] = []
    seen = set()
    for vid in video_ids:
        if vid not in seen:
            seen.add(vid)
            ordered_ids.append(vid)
    if not ordered_ids:
        return []

    vids = (
        db.query(Video)
        .options(joinedload(Video.user))
        .filter(Video.id.in_(ordered_ids))
        .all()
    )
    # Build lookup and preserve order from the relation rows
    by_id = {v.id: v for v in vids}
    ordered = [by_id[vid] for vid in ordered_ids if vid in by_id]
    return with_views(db, ordered)


def liked_videos_of(db: Session, user: User) -> List[VideoOut]:
    rows = (
        db.query(VideoLike.video_id)
        .filter(VideoLike.user_id == user.id, VideoLike.direction == LIKE)
        .order_by(VideoLike.created_at.desc())
        .all()
    )
    return _videos_in_relation_order(db, [vid for (vid,) in rows])


def history_of(db: Session, user: User) -> List[VideoOut]:
    rows = (
        db.query(View.video_id)
        .filter(View.user_id == user.id)
        .order_by(View.created_at.desc())
        .all()
    )
    return _videos_in_relation_order(db, [vid for (vid,) in rows])


def recommended_channels(db: Session, user: User) -> List[ChannelOut]:
    channels = (
        db.query(User)
        .filter(User.id != user.id)
        .order_by(User.created_at)
        .limit(settings.recommended_channels_limit)
        .all()
    )
    return channels_out(db, channels, user)
