"""
Unit tests for catalog.py.

Tests cover:
- Video creation, thumbnail derivation and thumbnail job enqueueing
- Video detail enrichment for owners, other users and anonymous viewers
- Cascading video deletion and ownership checks
- Comment posting and deletion
- Video and user search
- Profiles and profile edits
"""
import json
import uuid

import pytest

import catalog
import engagement
import storage
import subscriptions
from errors import NotFoundError, UnauthorizedError, ValidationError
from jobs import THUMBNAIL_QUEUE_KEY
from models import DISLIKE, LIKE, Comment, Video, VideoLike, View


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


# =============================================================================
# create_video
# =============================================================================

class TestCreateVideo:
    """Tests for video creation."""

    def test_thumbnail_derived_from_url(self, db, alice):
        v = catalog.create_video(db, alice, "Trip", "Alps", "https://cdn.example.org/v/trip.mp4")
        assert v.thumbnail == "https://cdn.example.org/v/trip.jpg"
        assert v.user_id == alice.id

    def test_explicit_thumbnail_kept(self, db, alice):
        v = catalog.create_video(
            db, alice, "Trip", "", "https://cdn.example.org/trip.webm",
            thumbnail="https://cdn.example.org/poster.png",
        )
        assert v.thumbnail == "https://cdn.example.org/poster.png"

    def test_fields_are_trimmed(self, db, alice):
        v = catalog.create_video(db, alice, "  Trip  ", "  notes ", "https://cdn.example.org/t.mp4")
        assert v.title == "Trip"
        assert v.description == "notes"

    @pytest.mark.parametrize("title,url", [("", "https://x.org/a.mp4"), ("  ", "https://x.org/a.mp4"), ("T", "")])
    def test_missing_title_or_url_rejected(self, db, alice, title, url):
        with pytest.raises(ValidationError):
            catalog.create_video(db, alice, title, "", url)
        assert db.query(Video).count() == 0

    def test_media_in_bucket_enqueues_thumbnail_job(self, db, alice, fake_redis):
        """Uploads to our bucket get a poster frame rendered by the worker."""
        key = storage.build_media_key(str(alice.id), "abc", ".mp4")
        v = catalog.create_video(db, alice, "Clip", "", storage.build_public_url(key))

        queued = [json.loads(p) for p in fake_redis.lists[THUMBNAIL_QUEUE_KEY]]
        assert queued == [{"video_id": str(v.id), "media_key": key, "reason": "created"}]

    def test_external_media_is_not_enqueued(self, db, alice, fake_redis):
        catalog.create_video(db, alice, "Clip", "", "https://cdn.example.org/clip.mp4")
        assert THUMBNAIL_QUEUE_KEY not in fake_redis.lists

    def test_custom_thumbnail_is_not_enqueued(self, db, alice, fake_redis):
        key = storage.build_media_key(str(alice.id), "abc", ".mp4")
        v = catalog.create_video(
            db, alice, "Clip", "", storage.build_public_url(key),
            thumbnail="https://img.example.org/poster.png",
        )
        assert v.thumbnail == "https://img.example.org/poster.png"
        assert THUMBNAIL_QUEUE_KEY not in fake_redis.lists


# =============================================================================
# get_video
# =============================================================================

class TestGetVideo:
    """Tests for the enriched video detail."""

    def test_owner_view(self, db, alice, make_video):
        v = make_video(alice, "Intro")
        detail = catalog.get_video(db, v.id, alice)
        assert detail.is_video_mine is True
        assert detail.user.username == "alice"

    def test_counts_and_flags_for_viewer(self, db, alice, bob, make_user, make_video):
        v = make_video(alice, "Intro")
        carol = make_user("carol")
        engagement.toggle_like(db, bob, v.id, LIKE)
        engagement.toggle_like(db, carol, v.id, DISLIKE)
        engagement.record_view(db, bob, v.id)
        engagement.record_view(db, None, v.id)
        subscriptions.toggle_subscription(db, bob, alice.id)

        detail = catalog.get_video(db, v.id, bob)
        assert detail.is_video_mine is False
        assert detail.is_liked is True
        assert detail.is_disliked is False
        assert detail.is_subscribed is True
        assert detail.is_viewed is True
        assert detail.likes_count == 1
        assert detail.dislikes_count == 1
        assert detail.views == 2
        assert detail.subscribers_count == 1

    def test_anonymous_flags_are_false(self, db, alice, bob, make_video):
        """Anonymous viewers see counts but every personal flag is False."""
        v = make_video(alice, "Intro")
        engagement.toggle_like(db, bob, v.id, LIKE)
        detail = catalog.get_video(db, v.id, None)
        assert detail.likes_count == 1
        assert not any(
            [detail.is_video_mine, detail.is_liked, detail.is_disliked,
             detail.is_subscribed, detail.is_viewed]
        )

    def test_comments_newest_first(self, db, alice, bob, make_video, clock):
        v = make_video(alice, "Intro")
        for text in ("first", "second", "third"):
            db.add(Comment(video_id=v.id, user_id=bob.id, text=text, created_at=clock()))
        db.commit()

        detail = catalog.get_video(db, v.id, None)
        assert [c.text for c in detail.comments] == ["third", "second", "first"]
        assert detail.comments_count == 3
        assert detail.comments[0].user.username == "bob"

    def test_unknown_video(self, db):
        with pytest.raises(NotFoundError):
            catalog.get_video(db, uuid.uuid4(), None)


# =============================================================================
# delete_video
# =============================================================================

class TestDeleteVideo:
    """Tests for cascading video deletion."""

    def test_cascade_removes_dependents(self, db, alice, bob, make_video):
        """Views, reactions and comments go with the video; others survive."""
        v = make_video(alice, "Doomed")
        keep = make_video(alice, "Kept")
        for target in (v, keep):
            engagement.record_view(db, bob, target.id)
            engagement.toggle_like(db, bob, target.id, LIKE)
            catalog.add_comment(db, target.id, bob, "nice")
        doomed_id = v.id

        catalog.delete_video(db, doomed_id, alice)

        assert db.query(Video).filter(Video.id == doomed_id).count() == 0
        for model in (View, VideoLike, Comment):
            assert db.query(model).filter(model.video_id == doomed_id).count() == 0
            assert db.query(model).filter(model.video_id == keep.id).count() == 1

    def test_non_owner_cannot_delete(self, db, alice, bob, make_video):
        v = make_video(alice, "Mine")
        with pytest.raises(UnauthorizedError):
            catalog.delete_video(db, v.id, bob)
        assert db.query(Video).count() == 1

    def test_unknown_video(self, db, alice):
        with pytest.raises(NotFoundError):
            catalog.delete_video(db, uuid.uuid4(), alice)

    def test_purges_media_in_bucket(self, db, alice, make_video, monkeypatch):
        removed = []
        monkeypatch.setattr(storage, "delete_object", lambda bucket, key: removed.append(key))
        key = storage.build_media_key(str(alice.id), "clip", ".mp4")
        v = make_video(alice, "Clip", url=storage.build_public_url(key))
        v.thumbnail = storage.build_public_url(storage.derive_thumbnail(key))
        db.commit()

        catalog.delete_video(db, v.id, alice)
        assert removed == [key, storage.derive_thumbnail(key)]

    def test_storage_failure_does_not_undo_delete(self, db, alice, make_video, monkeypatch):
        def boom(bucket, key):
            raise RuntimeError("storage down")

        monkeypatch.setattr(storage, "delete_object", boom)
        key = storage.build_media_key(str(alice.id), "clip", ".mp4")
        v = make_video(alice, "Clip", url=storage.build_public_url(key))

        catalog.delete_video(db, v.id, alice)
        assert db.query(Video).count() == 0


# =============================================================================
# Comments
# =============================================================================

class TestComments:
    """Tests for posting and deleting comments."""

    def test_add_comment_trims_text(self, db, alice, bob, make_video):
        v = make_video(alice, "Intro")
        c = catalog.add_comment(db, v.id, bob, "  great video  ")
        assert c.text == "great video"
        assert c.user_id == bob.id

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_rejected(self, db, alice, make_video, text):
        v = make_video(alice, "Intro")
        with pytest.raises(ValidationError):
            catalog.add_comment(db, v.id, alice, text)

    def test_empty_text_checked_before_video(self, db, alice):
        """Blank text is a validation error even when the video is unknown."""
        with pytest.raises(ValidationError):
            catalog.add_comment(db, uuid.uuid4(), alice, "")

    def test_comment_on_unknown_video(self, db, alice):
        with pytest.raises(NotFoundError):
            catalog.add_comment(db, uuid.uuid4(), alice, "hello")

    def test_author_deletes_comment(self, db, alice, bob, make_video):
        v = make_video(alice, "Intro")
        c = catalog.add_comment(db, v.id, bob, "hello")
        catalog.delete_comment(db, c.id, bob)
        assert db.query(Comment).count() == 0

    def test_video_owner_cannot_delete_others_comment(self, db, alice, bob, make_video):
        """Only the comment's author may remove it."""
        v = make_video(alice, "Intro")
        c = catalog.add_comment(db, v.id, bob, "hello")
        with pytest.raises(UnauthorizedError):
            catalog.delete_comment(db, c.id, alice)
        assert db.query(Comment).count() == 1

    def test_comment_scoped_to_video(self, db, alice, bob, make_video):
        v = make_video(alice, "Intro")
        other = make_video(alice, "Other")
        c = catalog.add_comment(db, v.id, bob, "hello")
        with pytest.raises(NotFoundError):
            catalog.delete_comment(db, c.id, bob, video_id=other.id)

    def test_unknown_comment(self, db, bob):
        with pytest.raises(NotFoundError):
            catalog.delete_comment(db, uuid.uuid4(), bob)


# =============================================================================
# Search
# =============================================================================

class TestSearch:
    """Tests for video and user search."""

    def test_search_matches_title_or_description(self, db, alice, make_video):
        make_video(alice, "Cooking Pasta")
        make_video(alice, "Travel", description="street food and PASTA stalls")
        make_video(alice, "Gardening")

        titles = [v.title for v in catalog.search_videos(db, "pasta")]
        assert titles == ["Travel", "Cooking Pasta"]

    def test_search_results_carry_view_counts(self, db, alice, bob, make_video):
        v = make_video(alice, "Cooking")
        engagement.record_view(db, bob, v.id)
        [hit] = catalog.search_videos(db, "cook")
        assert hit.views == 1

    def test_wildcards_are_literal(self, db, alice, make_video):
        make_video(alice, "100% real")
        make_video(alice, "1000 reasons")
        assert [v.title for v in catalog.search_videos(db, "100%")] == ["100% real"]

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_empty_query_rejected(self, db, query):
        with pytest.raises(ValidationError):
            catalog.search_videos(db, query)
        with pytest.raises(ValidationError):
            catalog.search_users(db, query, None)

    def test_search_users(self, db, alice, bob, make_user, make_video):
        make_user("alicia")
        make_video(alice, "One")
        subscriptions.toggle_subscription(db, bob, alice.id)

        users = catalog.search_users(db, "ALI", bob)
        assert [u.username for u in users] == ["alice", "alicia"]
        assert users[0].subscribers_count == 1
        assert users[0].videos_count == 1
        assert users[0].is_subscribed is True
        assert users[1].is_subscribed is False

    def test_search_users_marks_self(self, db, alice):
        [me] = catalog.search_users(db, "alice", alice)
        assert me.is_me is True


# =============================================================================
# Profiles
# =============================================================================

class TestProfile:
    """Tests for profiles and profile edits."""

    def test_profile_contents(self, db, alice, bob, make_user, make_video):
        carol = make_user("carol")
        older = make_video(alice, "Older")
        newer = make_video(alice, "Newer")
        subscriptions.toggle_subscription(db, alice, carol.id)
        subscriptions.toggle_subscription(db, bob, alice.id)

        profile = catalog.get_profile(db, alice.id, bob)
        assert profile.username == "alice"
        assert profile.subscribers_count == 1
        assert profile.is_subscribed is True
        assert profile.is_me is False
        assert [v.id for v in profile.videos] == [str(newer.id), str(older.id)]
        assert [c.username for c in profile.channels] == ["carol"]

    def test_own_profile(self, db, alice):
        profile = catalog.get_profile(db, alice.id, alice)
        assert profile.is_me is True
        assert profile.is_subscribed is False
        assert profile.videos == []
        assert profile.channels == []

    def test_profile_does_not_expose_email(self, db, alice):
        profile = catalog.get_profile(db, alice.id, None)
        assert "email" not in profile.model_dump()

    def test_unknown_profile(self, db):
        with pytest.raises(NotFoundError):
            catalog.get_profile(db, uuid.uuid4(), None)

    def test_edit_profile_updates_only_given_fields(self, db, alice):
        catalog.edit_profile(db, alice, {"about": "I film mountains", "cover": None})
        assert alice.about == "I film mountains"
        assert alice.cover is None
        assert alice.username == "alice"

    def test_edit_profile_ignores_unknown_fields(self, db, alice):
        catalog.edit_profile(db, alice, {"email": "evil@mail.com", "username": " Alice B "})
        assert alice.email == "alice@mail.com"
        assert alice.username == "Alice B"

    def test_blank_username_rejected(self, db, alice):
        with pytest.raises(ValidationError):
            catalog.edit_profile(db, alice, {"username": "   "})

    def test_none_clears_optional_fields(self, db, alice):
        catalog.edit_profile(db, alice, {"about": "I film mountains", "avatar": "https://img.example.org/a.png"})
        catalog.edit_profile(db, alice, {"about": None, "avatar": None})
        assert alice.about is None
        assert alice.avatar is None
        assert alice.username == "alice"

    def test_null_username_rejected(self, db, alice):
        with pytest.raises(ValidationError):
            catalog.edit_profile(db, alice, {"username": None})
        assert alice.username == "alice"
