# apps/api/jobs.py
import json
from typing import Optional
from cache import redis_client

THUMBNAIL_QUEUE_KEY = "q:thumbnails"
THUMBNAIL_DLQ_KEY = "dlq:thumbnails"


def enqueue_generate_thumbnail(video_id: str, media_key: str, *, reason: Optional[str] = None) -> None:
    payload = {"video_id": video_id, "media_key": media_key, "reason": reason or "created"}
    redis_client.lpush(THUMBNAIL_QUEUE_KEY, json.dumps(payload))
