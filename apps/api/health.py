# apps/api/health.py
from __future__ import annotations

import logging
from typing import Any, Dict

from cache import healthcheck as cache_healthcheck
from config import settings
from db import healthcheck as db_healthcheck
from storage import client as storage_client

log = logging.getLogger("health")


def check_database() -> Dict[str, Any]:
    try:
        db_healthcheck()
        return {"ok": True}
    except Exception as e:
        log.warning("Database health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_cache() -> Dict[str, Any]:
    try:
        if not cache_healthcheck():
            raise RuntimeError("Redis ping returned falsy response")
        return {"ok": True}
    except Exception as e:
        log.warning("Cache health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_object_storage() -> Dict[str, Any]:
    """Media uploads and thumbnails both need the bucket to exist."""
    bucket = settings.s3_bucket
    if not bucket:
        return {"ok": True, "skipped": True, "reason": "S3 bucket not configured"}
    try:
        if not storage_client().bucket_exists(bucket):
            raise RuntimeError(f"Bucket '{bucket}' does not exist")
        return {"ok": True, "bucket": bucket}
    except Exception as e:
        log.warning("Object storage health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def collect_health_status() -> Dict[str, Any]:
    """
    Run every dependency check.

    The overall "ok" flag is True only when the database, Redis and the
    media bucket are all reachable.
    """
    checks = {
        "database": check_database(),
        "cache": check_cache(),
        "object_storage": check_object_storage(),
    }
    return {
        "ok": all(c.get("ok", False) for c in checks.values()),
        "checks": checks,
    }
