# apps/api/routes_uploads.py
import os
import uuid
from fastapi import APIRouter, Depends, status

from csrf import require_csrf
from session import get_current_user
from models import User
from config import settings
from errors import RateLimitExceededError, ValidationError
from schemas import PresignRequest, PresignResponse
from storage import build_media_key, build_public_url, derive_thumbnail, presign_put
from cache import incr_window

router = APIRouter(tags=["uploads"], dependencies=[Depends(require_csrf)])

UPLOAD_LIMIT = 5
UPLOAD_WINDOW_SEC = 60


def check_upload_rate_limit(user_id: str) -> None:
    if incr_window(f"rl:upload:{user_id}", UPLOAD_WINDOW_SEC) > UPLOAD_LIMIT:
        raise RateLimitExceededError("Too many uploads, try again soon.", retry_after=UPLOAD_WINDOW_SEC)


@router.post("/uploads/presign", response_model=PresignResponse, status_code=status.HTTP_200_OK)
def presign_upload(body: PresignRequest, user: User = Depends(get_current_user)):
    # Validate inputs
    if not body.filename or not body.content_type:
        raise ValidationError("Missing filename or content type")
    if body.content_type not in settings.upload_allowed_mime:
        raise ValidationError("Unsupported content type", field="content_type")
    if body.size_bytes <= 0 or body.size_bytes > settings.upload_max_bytes:
        raise ValidationError(
            f"Video file should be less than {settings.upload_max_bytes // 1_000_000}mb",
            field="size_bytes",
        )

    check_upload_rate_limit(str(user.id))

    _, ext = os.path.splitext(body.filename)
    media_key = build_media_key(str(user.id), str(uuid.uuid4()), ext or ".mp4")
    put_url = presign_put(settings.s3_bucket, media_key, settings.presign_expires_seconds)
    url = build_public_url(media_key)

    # Client should set these headers on the PUT
    headers = {"Content-Type": body.content_type}
    return PresignResponse(
        media_key=media_key,
        put_url=put_url,
        headers=headers,
        url=url,
        thumbnail=derive_thumbnail(url),
    )
