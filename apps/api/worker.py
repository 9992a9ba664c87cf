# apps/api/worker.py
import os
import json
import uuid
import time
import threading
import logging
import tempfile
import subprocess
from typing import Optional

from fastapi import FastAPI, Response
from redis.exceptions import RedisError

from cache import redis_client, healthcheck as cache_health
from db import SessionLocal, healthcheck as db_health
from models import Video
from jobs import THUMBNAIL_QUEUE_KEY, THUMBNAIL_DLQ_KEY
from config import settings
from storage import (
    build_public_url,
    derive_thumbnail,
    download_object,
    object_exists,
    upload_file,
)

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("worker")

app = FastAPI(title="Vidshare Thumbnail Worker")

_stop_event = threading.Event()


def _lock_key(video_id: str) -> str:
    return f"lock:thumbnail:{video_id}"


def _attempts_key(video_id: str) -> str:
    return f"attempts:thumbnail:{video_id}"


def acquire_lock(video_id: str, worker_id: str, ttl_ms: int) -> bool:
    try:
        return bool(redis_client.set(_lock_key(video_id), worker_id, nx=True, px=ttl_ms))
    except RedisError:
        log.warning("lock_acquire_failed video_id=%s", video_id)
        return False


def refresh_lock(video_id: str, ttl_ms: int) -> None:
    try:
        redis_client.pexpire(_lock_key(video_id), ttl_ms)
    except RedisError:
        log.warning("lock_refresh_failed video_id=%s", video_id)


def release_lock(video_id: str, worker_id: str) -> None:
    try:
        if redis_client.get(_lock_key(video_id)) == worker_id:
            redis_client.delete(_lock_key(video_id))
    except RedisError:
        log.warning("lock_release_failed video_id=%s", video_id)


def _backoff_for_attempt(attempt: int) -> Optional[int]:
    arr = settings.worker_backoff_seconds
    return arr[attempt - 1] if 1 <= attempt <= len(arr) else None


def _lock_refresher(video_id: str, stop: threading.Event):
    interval = max(5, min(60, settings.worker_lock_ttl_ms // 3000))
    while not stop.wait(interval):
        refresh_lock(video_id, settings.worker_lock_ttl_ms)


def _format_offset(offset_seconds: float) -> str:
    """Format a seek offset as HH:MM:SS.mmm for ffmpeg."""
    ts = max(0.0, float(offset_seconds))
    h = int(ts // 3600)
    m = int((ts % 3600) // 60)
    s = ts - (h * 3600 + m * 60)
    return f"{h:02d}:{m:02d}:{s:06.3f}"


def _generate_thumbnail(src_path: str, out_path: str, offset_seconds: float = 0.0) -> None:
    os.makedirs(os.path.dirname(out_path), exist_ok=True)
    t0 = time.time()
    ts_str = _format_offset(offset_seconds)
    cmd = [
        settings.ffmpeg_bin,
        "-y",
        "-ss",
        ts_str,
        "-i",
        src_path,
        "-frames:v",
        "1",
        "-q:v",
        "2",
        out_path,
    ]
    res = subprocess.run(
        cmd, capture_output=True, text=True, timeout=settings.thumbnail_timeout_seconds
    )
    dt = int((time.time() - t0) * 1000)
    if res.returncode != 0:
        raise RuntimeError(
            f"ffmpeg(thumbnail) failed: code={res.returncode} err={res.stderr.strip()}"
        )
    log.info(json.dumps({"step": "thumbnail", "duration_ms": dt, "seek": ts_str}))


def _attach_thumbnail(video_id: str, thumbnail_url: str) -> bool:
    with SessionLocal() as db:
        v = db.get(Video, uuid.UUID(video_id))
        if not v:
            return False
        if v.thumbnail and v.thumbnail != thumbnail_url:
            log.info("Video %s keeps its custom thumbnail", video_id)
            return True
        if v.thumbnail != thumbnail_url:
            v.thumbnail = thumbnail_url
            db.commit()
        return True


def _dead_letter(video_id: str, media_key: str, error: str, attempts: int, reason: str) -> None:
    payload = {
        "video_id": video_id,
        "media_key": media_key,
        "error": error,
        "attempts": attempts,
        "reason": reason,
        "ts": int(time.time()),
    }
    redis_client.lpush(THUMBNAIL_DLQ_KEY, json.dumps(payload))
    redis_client.ltrim(THUMBNAIL_DLQ_KEY, 0, 9999)


def process_thumbnail(video_id: str, media_key: str, reason: str) -> None:
    """
    Render the poster frame for an uploaded video and attach it.

    The frame is stored next to the media object under the same name with
    a .jpg extension. Re-running a job is safe: an existing poster object is
    reused and only the video row is touched.
    """
    worker_id = f"pid:{os.getpid()}-thr:{threading.get_ident()}"
    if not acquire_lock(video_id, worker_id, settings.worker_lock_ttl_ms):
        log.info(json.dumps({"video_id": video_id, "step": "lock_skip", "reason": "already_locked"}))
        return

    refresher_stop = threading.Event()
    refresher = threading.Thread(
        target=_lock_refresher, args=(video_id, refresher_stop), daemon=True
    )
    refresher.start()

    thumb_key = derive_thumbnail(media_key)
    try:
        log.info(json.dumps({"video_id": video_id, "step": "start", "reason": reason}))

        exists, _ = object_exists(settings.s3_bucket, thumb_key)
        if not exists:
            with tempfile.TemporaryDirectory() as tmpd:
                local_media = os.path.join(tmpd, "media" + os.path.splitext(media_key)[1])
                local_thumb = os.path.join(tmpd, "thumb", "poster.jpg")
                download_object(settings.s3_bucket, media_key, local_media)
                _generate_thumbnail(local_media, local_thumb, settings.thumbnail_offset_seconds)
                upload_file(settings.s3_bucket, thumb_key, local_thumb, "image/jpeg")

        attached = _attach_thumbnail(video_id, build_public_url(thumb_key))
        if not attached:
            log.warning(json.dumps({"video_id": video_id, "step": "attach", "error": "missing_video"}))

        redis_client.delete(_attempts_key(video_id))
        log.info(json.dumps({"video_id": video_id, "step": "finalize", "attached": attached}))

    except Exception as e:
        log.exception("process_thumbnail_failed")
        attempts = int(redis_client.incr(_attempts_key(video_id)))
        delay = _backoff_for_attempt(attempts)
        if delay is not None:
            log.info(
                json.dumps(
                    {"video_id": video_id, "step": "retry", "attempts": attempts, "delay_sec": delay}
                )
            )
            time.sleep(delay)
            redis_client.lpush(
                THUMBNAIL_QUEUE_KEY,
                json.dumps({"video_id": video_id, "media_key": media_key, "reason": "retry"}),
            )
        else:
            _dead_letter(video_id, media_key, str(e), attempts, reason)
            log.error(json.dumps({"video_id": video_id, "step": "failed_terminal", "error": str(e)}))
    finally:
        refresher_stop.set()
        release_lock(video_id, worker_id)


def handle_payload(payload: str) -> None:
    data = json.loads(payload)
    video_id = data.get("video_id")
    media_key = data.get("media_key")
    if not video_id or not media_key:
        log.warning("Dropping malformed thumbnail job: %s", payload)
        return
    process_thumbnail(video_id, media_key, data.get("reason", "unknown"))


def _consumer_loop():
    log.info("Thumbnail consumer started")
    while not _stop_event.is_set():
        try:
            item = redis_client.brpop(THUMBNAIL_QUEUE_KEY, timeout=5)
            if not item:
                continue
            _q, payload = item
            handle_payload(payload)
        except Exception:
            log.exception("worker_loop_error")
            time.sleep(1)


@app.on_event("startup")
def on_startup():
    t = threading.Thread(target=_consumer_loop, daemon=True)
    t.start()


@app.on_event("shutdown")
def on_shutdown():
    _stop_event.set()


@app.get("/ready")
def ready(response: Response):
    """
    Readiness probe for the worker.
    Returns 200 if the database and Redis are reachable, 503 if not.
    """
    ok_db = True
    ok_cache = True
    try:
        db_health()
    except Exception:
        log.warning("worker database check failed", exc_info=True)
        ok_db = False
    try:
        ok_cache = bool(cache_health())
    except RedisError:
        log.warning("worker cache check failed", exc_info=True)
        ok_cache = False

    is_ok = ok_db and ok_cache
    if not is_ok:
        response.status_code = 503
    return {"ok": is_ok, "db": ok_db, "cache": ok_cache}


# Run: uvicorn worker:app --port 8001
