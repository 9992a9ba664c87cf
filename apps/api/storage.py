from __future__ import annotations

import os
import posixpath
from datetime import timedelta
from typing import Optional, Tuple, Dict, Any
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error
from config import settings

THUMBNAIL_EXT = ".jpg"

_client: Optional[Minio] = None
_pub_client: Optional[Minio] = None


def _make_client(endpoint: str) -> Minio:
    u = urlparse(endpoint)
    host = u.netloc or u.path  # supports "http://localhost:9000" or "localhost:9000"
    secure = (u.scheme == "https") if u.scheme else settings.s3_use_ssl
    return Minio(
        host,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
        secure=secure,
        region=settings.s3_region,
    )


def client() -> Minio:
    global _client
    if _client is None:
        _client = _make_client(settings.s3_endpoint)
    return _client


def public_client() -> Minio:
    global _pub_client
    if _pub_client is None:
        _pub_client = _make_client(settings.s3_public_endpoint)
    return _pub_client


def ensure_bucket(bucket: Optional[str] = None) -> None:
    b = bucket or settings.s3_bucket
    c = client()
    if not c.bucket_exists(b):
        c.make_bucket(b)


def build_media_key(user_id: str, media_id: str, ext: str) -> str:
    if not ext.startswith("."):
        ext = "." + ext
    return f"media/{user_id}/{media_id}{ext.lower()}"


def derive_thumbnail(path_or_url: str) -> str:
    """Swap the media extension for the thumbnail image extension.

    Works on bare keys and full URLs alike; query strings are left intact.
    """
    u = urlparse(path_or_url)
    root, _ext = posixpath.splitext(u.path)
    return u._replace(path=root + THUMBNAIL_EXT).geturl()


def build_public_url(key: str) -> str:
    base = settings.s3_public_endpoint.rstrip("/")
    return f"{base}/{settings.s3_bucket}/{key}"


def key_from_public_url(url: str) -> Optional[str]:
    """Inverse of build_public_url; None when the URL is not in our bucket."""
    prefix = build_public_url("")
    if not url or not url.startswith(prefix):
        return None
    key = url[len(prefix):].split("?", 1)[0]
    return key or None


def presign_put(bucket: str, key: str, expires_seconds: int) -> str:
    c = public_client() if settings.s3_public_endpoint else client()
    return c.presigned_put_object(bucket, key, expires=timedelta(seconds=expires_seconds))


def object_exists(bucket: str, key: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
    c = client()
    try:
        st = c.stat_object(bucket, key)
    except S3Error:
        return False, None
    meta: Dict[str, Any] = {
        "size": getattr(st, "size", None),
        "etag": getattr(st, "etag", None),
        "content_type": getattr(st, "content_type", None),
    }
    return True, meta


def download_object(bucket: str, key: str, dest_path: str) -> None:
    os.makedirs(os.path.dirname(dest_path), exist_ok=True)
    client().fget_object(bucket, key, dest_path)


def upload_file(bucket: str, key: str, local_path: str, content_type: str) -> None:
    client().fput_object(bucket, key, local_path, content_type=content_type)


def delete_object(bucket: str, key: str) -> None:
    client().remove_object(bucket, key)
