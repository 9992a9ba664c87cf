# apps/api/schemas.py
from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime

from models import User, Video, Comment


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

class GoogleLoginRequest(BaseModel):
    id_token: str

class Ok(BaseModel):
    ok: bool

class PresignRequest(BaseModel):
    filename: str
    content_type: str
    size_bytes: int

class PresignResponse(BaseModel):
    media_key: str
    put_url: str
    headers: Dict[str, str]
    url: str
    thumbnail: str

class CreateVideoRequest(BaseModel):
    title: str
    description: Optional[str] = ""
    url: str
    thumbnail: Optional[str] = None

class CommentRequest(BaseModel):
    text: Optional[str] = ""

class EditProfileRequest(BaseModel):
    username: Optional[str] = None
    avatar: Optional[str] = None
    cover: Optional[str] = None
    about: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    username: str
    avatar: Optional[str] = None

class UserOut(UserSummary):
    email: str
    cover: Optional[str] = None
    about: Optional[str] = None
    created_at: datetime

class ChannelOut(UserSummary):
    cover: Optional[str] = None
    about: Optional[str] = None
    subscribers_count: int = 0
    videos_count: Optional[int] = None
    is_subscribed: bool = False
    is_me: bool = False

class VideoOut(BaseModel):
    id: str
    title: str
    description: str
    url: str
    thumbnail: Optional[str] = None
    created_at: datetime
    user: UserSummary
    views: int = 0

class CommentOut(BaseModel):
    id: str
    text: str
    created_at: datetime
    user: UserSummary

class VideoDetail(VideoOut):
    is_video_mine: bool = False
    is_liked: bool = False
    is_disliked: bool = False
    is_subscribed: bool = False
    is_viewed: bool = False
    likes_count: int = 0
    dislikes_count: int = 0
    subscribers_count: int = 0
    comments_count: int = 0
    comments: List[CommentOut] = []

class ProfileOut(UserSummary):
    cover: Optional[str] = None
    about: Optional[str] = None
    created_at: datetime
    subscribers_count: int = 0
    is_me: bool = False
    is_subscribed: bool = False
    channels: List[ChannelOut] = []
    videos: List[VideoOut] = []

class LikeOut(BaseModel):
    liked: bool
    disliked: bool

class SubscribeOut(BaseModel):
    subscribed: bool

class VideoList(BaseModel):
    videos: List[VideoOut]

class FeedOut(BaseModel):
    feed: List[VideoOut]

class ChannelList(BaseModel):
    channels: List[ChannelOut]

class UserList(BaseModel):
    users: List[ChannelOut]


def user_summary(u: User) -> UserSummary:
    return UserSummary(id=str(u.id), username=u.username or "", avatar=u.avatar)


def user_out(u: User) -> UserOut:
    return UserOut(
        id=str(u.id),
        username=u.username or "",
        avatar=u.avatar,
        email=u.email,
        cover=u.cover,
        about=u.about,
        created_at=u.created_at,
    )


def video_out(v: Video, views: int = 0) -> VideoOut:
    return VideoOut(
        id=str(v.id),
        title=v.title,
        description=v.description or "",
        url=v.url,
        thumbnail=v.thumbnail,
        created_at=v.created_at,
        user=user_summary(v.user),
        views=views,
    )


def comment_out(c: Comment) -> CommentOut:
    return CommentOut(
        id=str(c.id),
        text=c.text,
        created_at=c.created_at,
        user=user_summary(c.user),
    )
