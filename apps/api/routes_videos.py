# apps/api/routes_videos.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import catalog
import engagement
import feeds
from csrf import require_csrf
from db import get_db
from errors import parse_id
from session import get_current_user, get_optional_user
from models import DISLIKE, LIKE, User
from schemas import (
    CommentOut,
    CommentRequest,
    CreateVideoRequest,
    LikeOut,
    Ok,
    VideoDetail,
    VideoList,
    VideoOut,
    comment_out,
    video_out,
)

router = APIRouter(prefix="/videos", tags=["videos"], dependencies=[Depends(require_csrf)])

log = logging.getLogger("routes_videos")


def _like_out(direction: Optional[int]) -> LikeOut:
    return LikeOut(liked=direction == LIKE, disliked=direction == DISLIKE)


@router.get("", response_model=VideoList)
def recommended_videos(db: Session = Depends(get_db)):
    return VideoList(videos=feeds.recommended(db))


@router.post("", response_model=VideoOut, status_code=status.HTTP_201_CREATED)
def add_video(
    body: CreateVideoRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    v = catalog.create_video(
        db,
        user,
        title=body.title,
        description=body.description,
        url=body.url,
        thumbnail=body.thumbnail,
    )
    log.info("Video %s created by %s", v.id, user.id)
    return video_out(v)


@router.get("/trending", response_model=VideoList)
def trending_videos(db: Session = Depends(get_db)):
    return VideoList(videos=feeds.trending(db))


@router.get("/search", response_model=VideoList)
def search_videos(query: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return VideoList(videos=catalog.search_videos(db, query))


@router.get("/{video_id}", response_model=VideoDetail)
def get_video(
    video_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return catalog.get_video(db, parse_id(video_id, "video"), user)


@router.delete("/{video_id}", response_model=Ok)
def delete_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    catalog.delete_video(db, parse_id(video_id, "video"), user)
    return Ok(ok=True)


@router.post("/{video_id}/view", response_model=Ok)
def add_video_view(
    video_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    engagement.record_view(db, user, parse_id(video_id, "video"))
    return Ok(ok=True)


@router.post("/{video_id}/like", response_model=LikeOut)
def like_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _like_out(engagement.toggle_like(db, user, parse_id(video_id, "video"), LIKE))


@router.post("/{video_id}/dislike", response_model=LikeOut)
def dislike_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _like_out(engagement.toggle_like(db, user, parse_id(video_id, "video"), DISLIKE))


@router.post("/{video_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def add_comment(
    video_id: str,
    body: CommentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    c = catalog.add_comment(db, parse_id(video_id, "video"), user, body.text)
    return comment_out(c)


@router.delete("/{video_id}/comments/{comment_id}", response_model=Ok)
def delete_comment(
    video_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    catalog.delete_comment(
        db,
        parse_id(comment_id, "comment"),
        user,
        video_id=parse_id(video_id, "video"),
    )
    return Ok(ok=True)
