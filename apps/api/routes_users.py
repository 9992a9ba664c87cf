# apps/api/routes_users.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import catalog
import feeds
import subscriptions
from csrf import require_csrf
from db import get_db
from errors import parse_id
from session import get_current_user, get_optional_user
from models import User
from schemas import (
    ChannelList,
    EditProfileRequest,
    FeedOut,
    ProfileOut,
    SubscribeOut,
    UserList,
    UserOut,
    VideoList,
    user_out,
)

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_csrf)])


@router.get("", response_model=ChannelList)
def recommended_channels(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ChannelList(channels=feeds.recommended_channels(db, user))


@router.put("", response_model=UserOut)
def edit_user(
    body: EditProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = catalog.edit_profile(db, user, body.model_dump(exclude_unset=True))
    return user_out(updated)


@router.get("/liked-videos", response_model=VideoList)
def liked_videos(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return VideoList(videos=feeds.liked_videos_of(db, user))


@router.get("/history", response_model=VideoList)
def history(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return VideoList(videos=feeds.history_of(db, user))


@router.get("/feed", response_model=FeedOut)
def feed(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return FeedOut(feed=feeds.feed_for(db, user))


@router.get("/search", response_model=UserList)
def search_users(
    query: Optional[str] = Query(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return UserList(users=catalog.search_users(db, query, user))


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(
    user_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return catalog.get_profile(db, parse_id(user_id, "user"), user)


@router.post("/{user_id}/subscribe", response_model=SubscribeOut)
def toggle_subscribe(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    subscribed = subscriptions.toggle_subscription(db, user, parse_id(user_id, "user"))
    return SubscribeOut(subscribed=subscribed)
