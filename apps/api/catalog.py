# apps/api/catalog.py
"""
Video and comment records, user lookups and search.

Every read that is served to a viewer is enriched here with the
engagement counts and the viewer-relative flags (is this mine, have I
liked it, am I subscribed). Anonymous viewers get explicit False flags.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from redis.exceptions import RedisError
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

import engagement
import subscriptions
import storage
from config import settings
from errors import NotFoundError, UnauthorizedError, ValidationError
from jobs import enqueue_generate_thumbnail
from models import Comment, User, Video, VideoLike, View
from schemas import (
    ChannelOut,
    ProfileOut,
    VideoDetail,
    VideoOut,
    comment_out,
    user_summary,
    video_out,
)

log = logging.getLogger("catalog")

EDITABLE_PROFILE_FIELDS = ("username", "avatar", "cover", "about")


def _require_query(query: Optional[str]) -> str:
    q = (query or "").strip()
    if not q:
        raise ValidationError("Please enter a search query", field="query")
    return q


def with_views(db: Session, videos: List[Video]) -> List[VideoOut]:
    counts = engagement.view_counts(db, [v.id for v in videos])
    return [video_out(v, counts.get(v.id, 0)) for v in videos]


def video_counts(db: Session, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
    ids = list(user_ids)
    if not ids:
        return {}
    rows = (
        db.query(Video.user_id, func.count(Video.id))
        .filter(Video.user_id.in_(ids))
        .group_by(Video.user_id)
        .all()
    )
    counts = {uid: 0 for uid in ids}
    counts.update({uid: int(n) for uid, n in rows})
    return counts


def channels_out(
    db: Session,
    users: List[User],
    viewer: Optional[User],
    *,
    include_video_counts: bool = True,
) -> List[ChannelOut]:
    ids = [u.id for u in users]
    subs = subscriptions.subscriber_counts(db, ids)
    vids = video_counts(db, ids) if include_video_counts else {}
    following = subscriptions.subscribed_targets(db, viewer, ids)
    out: List[ChannelOut] = []
    for u in users:
        out.append(
            ChannelOut(
                id=str(u.id),
                username=u.username or "",
                avatar=u.avatar,
                cover=u.cover,
                about=u.about,
                subscribers_count=subs.get(u.id, 0),
                videos_count=vids.get(u.id) if include_video_counts else None,
                is_subscribed=u.id in following,
                is_me=viewer is not None and viewer.id == u.id,
            )
        )
    return out


# ---- videos -------------------------------------------------------------

def create_video(
    db: Session,
    owner: User,
    title: str,
    description: Optional[str],
    url: str,
    thumbnail: Optional[str] = None,
) -> Video:
    title = (title or "").strip()
    url = (url or "").strip()
    if not title:
        raise ValidationError("Please provide a title for the video", field="title")
    if not url:
        raise ValidationError("Please provide the uploaded video url", field="url")
    custom_thumbnail = (thumbnail or "").strip()

    v = Video(
        user_id=owner.id,
        title=title,
        description=(description or "").strip(),
        url=url,
        thumbnail=custom_thumbnail or storage.derive_thumbnail(url),
    )
    db.add(v)
    db.commit()
    db.refresh(v)

    # a poster frame is rendered only for our own uploads without a custom thumbnail
    media_key = None if custom_thumbnail else storage.key_from_public_url(url)
    if media_key:
        try:
            enqueue_generate_thumbnail(str(v.id), media_key)
        except RedisError:
            log.warning("Could not enqueue thumbnail job for video %s", v.id, exc_info=True)
    return v


def get_video(db: Session, video_id: uuid.UUID, viewer: Optional[User]) -> VideoDetail:
    v: Optional[Video] = (
        db.query(Video).options(joinedload(Video.user)).filter(Video.id == video_id).first()
    )
    if not v:
        raise NotFoundError("video", video_id)

    comments = (
        db.query(Comment)
        .options(joinedload(Comment.user))
        .filter(Comment.video_id == v.id)
        .order_by(Comment.created_at.desc())
        .all()
    )
    state = engagement.get_direction(db, viewer, v.id)
    base = video_out(v, engagement.count_views(db, v.id))

    return VideoDetail(
        **base.model_dump(),
        is_video_mine=viewer is not None and viewer.id == v.user_id,
        is_liked=state.liked,
        is_disliked=state.disliked,
        is_subscribed=subscriptions.is_subscribed(db, viewer, v.user_id),
        is_viewed=engagement.has_viewed(db, viewer, v.id),
        likes_count=engagement.count_likes(db, v.id),
        dislikes_count=engagement.count_dislikes(db, v.id),
        subscribers_count=subscriptions.count_subscribers(db, v.user_id),
        comments_count=len(comments),
        comments=[comment_out(c) for c in comments],
    )


def delete_video(db: Session, video_id: uuid.UUID, requester: User) -> None:
    v: Optional[Video] = db.get(Video, video_id)
    if not v:
        raise NotFoundError("video", video_id)
    if v.user_id != requester.id:
        raise UnauthorizedError("You are not authorized to delete this video")

    media_urls = [v.url, v.thumbnail]
    try:
        # Dependents first, then the video, all in one transaction
        db.query(View).filter(View.video_id == video_id).delete(synchronize_session=False)
        db.query(VideoLike).filter(VideoLike.video_id == video_id).delete(synchronize_session=False)
        db.query(Comment).filter(Comment.video_id == video_id).delete(synchronize_session=False)
        db.delete(v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("Video %s deleted by %s", video_id, requester.id)
    _purge_media(media_urls)


def _purge_media(urls: List[Optional[str]]) -> None:
    for url in urls:
        key = storage.key_from_public_url(url or "")
        if not key:
            continue
        try:
            storage.delete_object(settings.s3_bucket, key)
        except Exception as exc:
            log.warning("Failed to remove %s from storage: %s", key, exc)


def search_videos(db: Session, query: Optional[str]) -> List[VideoOut]:
    q = _require_query(query)
    videos = (
        db.query(Video)
        .options(joinedload(Video.user))
        .filter(
            Video.title.icontains(q, autoescape=True)
            | Video.description.icontains(q, autoescape=True)
        )
        .order_by(Video.created_at.desc())
        .all()
    )
    return with_views(db, videos)


# ---- comments -----------------------------------------------------------

def add_comment(db: Session, video_id: uuid.UUID, author: User, text: Optional[str]) -> Comment:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Please provide comment text to post a comment.", field="text")
    if not db.get(Video, video_id):
        raise NotFoundError("video", video_id)

    c = Comment(video_id=video_id, user_id=author.id, text=text)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def delete_comment(
    db: Session,
    comment_id: uuid.UUID,
    requester: User,
    video_id: Optional[uuid.UUID] = None,
) -> None:
    c: Optional[Comment] = db.get(Comment, comment_id)
    if not c or (video_id is not None and c.video_id != video_id):
        raise NotFoundError("comment", comment_id)
    if c.user_id != requester.id:
        raise UnauthorizedError("You are not authorized to delete this comment")
    db.delete(c)
    db.commit()


# ---- users --------------------------------------------------------------

def search_users(db: Session, query: Optional[str], viewer: Optional[User]) -> List[ChannelOut]:
    q = _require_query(query)
    users = (
        db.query(User)
        .filter(User.username.icontains(q, autoescape=True))
        .order_by(User.username)
        .all()
    )
    return channels_out(db, users, viewer)


def get_profile(db: Session, user_id: uuid.UUID, viewer: Optional[User]) -> ProfileOut:
    user: Optional[User] = db.get(User, user_id)
    if not user:
        raise NotFoundError("user", user_id)

    following = subscriptions.subscriptions_of(db, user.id)
    channels: List[User] = []
    if following:
        channels = (
            db.query(User).filter(User.id.in_(following)).order_by(User.username).all()
        )
    videos = (
        db.query(Video)
        .options(joinedload(Video.user))
        .filter(Video.user_id == user.id)
        .order_by(Video.created_at.desc())
        .all()
    )
    summary = user_summary(user)
    return ProfileOut(
        **summary.model_dump(),
        cover=user.cover,
        about=user.about,
        created_at=user.created_at,
        subscribers_count=subscriptions.count_subscribers(db, user.id),
        is_me=viewer is not None and viewer.id == user.id,
        is_subscribed=subscriptions.is_subscribed(db, viewer, user.id),
        channels=channels_out(db, channels, viewer, include_video_counts=False),
        videos=with_views(db, videos),
    )


def edit_profile(db: Session, user: User, fields: Dict[str, Any]) -> User:
    # only the keys present are applied; None clears avatar, cover or about
    changes = {k: v for k, v in fields.items() if k in EDITABLE_PROFILE_FIELDS}
    if "username" in changes:
        changes["username"] = (changes["username"] or "").strip()
        if not changes["username"]:
            raise ValidationError("Username cannot be empty", field="username")
    for k, v in changes.items():
        setattr(user, k, v)
    db.commit()
    db.refresh(user)
    return user
