# apps/api/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

# Naming convention helps Alembic autogenerate predictable constraint names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)
Base = declarative_base(metadata=metadata)

LIKE = 1
DISLIKE = -1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created_at() -> Column:
    return Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    email = Column(String(320), unique=True, nullable=False)  # store lowercase
    username = Column(String, nullable=False, default="", server_default="")
    password_hash = Column(String, nullable=True)  # null for Google-only accounts
    avatar = Column(String, nullable=True)
    cover = Column(String, nullable=True)
    about = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    videos = relationship("Video", back_populates="user")

    __table_args__ = (Index("ix_users_username", "username"),)


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="", server_default="")
    url = Column(String, nullable=False)
    thumbnail = Column(String, nullable=True)

    created_at = _created_at()

    user = relationship("User", back_populates="videos")
    comments = relationship("Comment", back_populates="video")

    __table_args__ = (Index("ix_videos_user_id_created_at", "user_id", "created_at"),)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = _created_at()

    user = relationship("User")
    video = relationship("Video", back_populates="comments")

    __table_args__ = (Index("ix_comments_video_id_created_at", "video_id", "created_at"),)


class View(Base):
    __tablename__ = "views"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)  # null = anonymous
    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id"), nullable=False)
    created_at = _created_at()

    __table_args__ = (
        Index("ix_views_video_id", "video_id"),
        Index("ix_views_user_id_created_at", "user_id", "created_at"),
    )


class VideoLike(Base):
    __tablename__ = "video_likes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id"), nullable=False)
    direction = Column(SmallInteger, nullable=False)  # 1 like | -1 dislike
    created_at = _created_at()

    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
        CheckConstraint("direction IN (1, -1)", name="direction"),
        Index("ix_video_likes_video_id_direction", "video_id", "direction"),
    )


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    subscriber_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    subscribed_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = _created_at()

    __table_args__ = (
        UniqueConstraint("subscriber_id", "subscribed_to_id"),
        Index("ix_subscriptions_subscribed_to_id", "subscribed_to_id"),
    )
